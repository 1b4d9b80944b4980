"""Camada de infraestrutura: persistência de sessões, segredos e agendamento.

Uso típico:
    from pos_handoff.infra.session_store import create_session_store

Infraestrutura não decide regra de negócio; transições de estado são
validadas na camada de aplicação antes de qualquer compare_and_set.
"""
