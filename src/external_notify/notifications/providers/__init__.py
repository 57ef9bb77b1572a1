"""Push provider declarations: one schema plus one send coroutine per module."""
