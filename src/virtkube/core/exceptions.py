class VirtKubeError(Exception):
    """Base exception for virtkube."""

    pass


class NotFoundError(VirtKubeError):
    """Raised when a catalog entry, credential or referenced object does not exist."""

    pass


class DecodeError(VirtKubeError):
    """Raised when an opaque provider payload cannot be decoded."""

    pass


class PreconditionError(VirtKubeError):
    """Raised when a generation run is missing a required input (SSH key, volume, provider config)."""

    pass


class ConversionError(VirtKubeError):
    """Raised when an object cannot be converted to its versioned representation."""

    pass


class AdmissionError(VirtKubeError):
    """Raised when an admission request carries one or more field violations."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))
