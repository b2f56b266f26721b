"""
Error taxonomy of the bootstrap.

A bad listen address only costs that one listener (`AddressParseError` is caught
and logged by the resolver). Everything deriving from `FatalError` aborts the whole startup;
the code raising it never exits the process itself, that is left to the entry point,
which maps the whole category to a single exit status.
"""

FATAL_EXIT_STATUS = 2


class AddressParseError(ValueError):
    def __init__(self, raw: object, reason: str):
        super().__init__(f"Invalid listen address {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class FatalError(Exception):
    exit_status = FATAL_EXIT_STATUS


class ConfigurationError(FatalError):
    pass


class CertificateLoadError(FatalError):
    pass


class BindError(FatalError):
    pass
