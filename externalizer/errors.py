"""Exception types shared across the scan/commit pipeline."""


class ExternalizerError(Exception):
    """Base class for externalizer failures."""


class ResourceTableError(ExternalizerError):
    """The string-resource table could not be located, created, read or written.

    Fatal to a commit: source rewriting depends on the keys existing.
    """


class StaleHandleError(ExternalizerError):
    """A node handle no longer points at the node it was created for."""


class SynthesisError(ExternalizerError):
    """A replacement expression could not be built or applied."""
