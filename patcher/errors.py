"""Exception hierarchy for the patch engine."""


class PatchError(Exception):
    pass


class MalformedDocumentError(PatchError):
    """A document could not be parsed or does not have the expected shape."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class PrerequisiteError(PatchError):
    """The host does not meet the runtime requirements."""
