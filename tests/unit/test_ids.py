"""Testes para utils/ids.py."""

from __future__ import annotations

import re

from pos_handoff.utils.ids import new_session_id, new_session_token


def test_session_id_format() -> None:
    assert re.fullmatch(r"pos_\d{13}_[0-9a-f]{32}", new_session_id())


def test_session_token_is_256_bits_hex() -> None:
    token = new_session_token()
    assert re.fullmatch(r"[0-9a-f]{64}", token)


def test_ids_are_unique() -> None:
    assert len({new_session_id() for _ in range(200)}) == 200
    assert len({new_session_token() for _ in range(200)}) == 200
