"""JSON-RPC transport, dispatch and typed operation parameters.

Import the submodules directly (``bfclient.rpc.dispatcher``,
``bfclient.rpc.params``); the dispatcher depends on the session package,
which itself uses :mod:`bfclient.rpc.transport`.
"""

__all__: list[str] = []
