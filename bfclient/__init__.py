"""Top-level package for the Betfair exchange session client.

Subpackages cover configuration, the authenticated session, JSON-RPC
dispatch, currency rates and the Exchange Stream binding. The high level
entry point is :class:`bfclient.client.BetfairClient`.
"""

__all__: list[str] = []
