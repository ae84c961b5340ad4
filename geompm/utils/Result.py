class Result(object):
    """Outcome of a validating operation.

    Truthy on success and falsy on failure, so callers can write
    ``if not node.update_momentum(...)``. A failed result carries the reason.
    Comparing with a bool compares the success flag.
    """
    __slots__ = ("ok", "reason")

    def __init__(self, ok=True, reason=""):
        self.ok = bool(ok)
        self.reason = reason

    @classmethod
    def success(cls):
        return cls(True)

    @classmethod
    def failure(cls, reason):
        return cls(False, reason)

    def __bool__(self):
        return self.ok

    def __eq__(self, other):
        if isinstance(other, bool):
            return self.ok == other
        if isinstance(other, Result):
            return self.ok == other.ok and self.reason == other.reason
        return NotImplemented

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        if self.ok:
            return "Result(ok)"
        return f"Result(failed: {self.reason})"


SUCCESS = Result.success()
