"""Task orchestration core.

A chat request flows through tool detection, input classification, message
building and the JSON-RPC envelope codec before it reaches a backend gateway.
Independently, a run is a static tree of tasks sharing one ``RunOutput``
accumulator, executed depth-first by ``TaskExecutor``.

Nothing here is persisted: a run lives for the duration of one orchestration.
"""
