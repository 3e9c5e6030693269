"""Prometheus exporter for MCS project balances."""

__version__ = "0.1.0"


def describe() -> str:
    return (
        "Signs in to Mail.ru Cloud Solutions, polls the balance of every "
        "accessible project and exposes it as the balance_mcs gauge."
    )
