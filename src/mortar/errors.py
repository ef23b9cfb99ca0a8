from dataclasses import dataclass
from pathlib import Path


class MortarError(Exception):
    """
    Base class for errors that are reported to the user without a traceback.
    """


class UsageError(MortarError):
    """
    Raised when the command-line input or the manifests it points to can not be used.
    """


class ConfigError(UsageError):
    """
    Raised for malformed configuration input, such as a `--var` assignment without a value.
    """


@dataclass
class TemplateError(MortarError):
    """
    Raised when a manifest template can not be rendered.
    """

    filename: Path | str
    message: str

    def __str__(self) -> str:
        return f"Failed to render template '{self.filename}': {self.message}"
