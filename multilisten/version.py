import importlib.metadata

PACKAGE_NAME = "multilisten"


def package_version() -> str:
    try:
        return importlib.metadata.version(PACKAGE_NAME)
    except importlib.metadata.PackageNotFoundError:
        # Running from a source tree that was not installed.
        return "0+unknown"
