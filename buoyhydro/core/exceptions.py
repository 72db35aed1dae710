from __future__ import annotations

from pathlib import Path
from typing import Any, Optional


def _as_str(path: Optional[str | Path]) -> Optional[str]:
    return str(path) if path else None


class BuoyHydroError(Exception):
    """Base class; subclasses append their context to the message as ' | '-joined parts."""

    def _details(self) -> list[str]:
        return []

    def __str__(self) -> str:
        return " | ".join([super().__str__(), *self._details()])


class SchemaError(BuoyHydroError):
    """Raised when a body or scenario document fails JSON schema validation."""

    def __init__(
        self,
        message: str,
        schema_path: Optional[str | Path] = None,
        schema_name: Optional[str] = None,
        validation_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.schema_path = _as_str(schema_path)
        self.schema_name = schema_name
        self.validation_error = validation_error

    def _details(self) -> list[str]:
        out = []
        if self.schema_name:
            out.append(f"Schema: {self.schema_name}")
        if self.schema_path:
            out.append(f"Path: {self.schema_path}")
        return out


class ConfigError(BuoyHydroError):
    """Raised when an operation is invoked before the setup it depends on,
    or when body/simulation parameters are invalid."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str | Path] = None,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
    ):
        super().__init__(message)
        self.config_path = _as_str(config_path)
        self.field_name = field_name
        self.field_value = field_value

    def _details(self) -> list[str]:
        out = []
        if self.field_name:
            out.append(f"Field: {self.field_name}")
            if self.field_value is not None:
                out.append(f"Value: {self.field_value}")
        if self.config_path:
            out.append(f"Path: {self.config_path}")
        return out


class DataError(BuoyHydroError):
    """Raised when a coefficient file or table is malformed or inconsistent."""

    def __init__(
        self,
        message: str,
        path: Optional[str | Path] = None,
        line_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.path = _as_str(path)
        self.line_number = line_number

    def _details(self) -> list[str]:
        out = []
        if self.path:
            out.append(f"Path: {self.path}")
        if self.line_number is not None:
            out.append(f"Line: {self.line_number}")
        return out


class NumericalInstability(BuoyHydroError):
    """Raised when the integrated state or its derivatives become non-finite or jump."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        value: Optional[float] = None,
        simulation_time: Optional[float] = None,
    ):
        super().__init__(message)
        self.component = component
        self.value = value
        self.simulation_time = simulation_time

    def _details(self) -> list[str]:
        out = []
        if self.component:
            out.append(f"Component: {self.component}")
        if self.value is not None:
            out.append(f"Value: {self.value}")
        if self.simulation_time is not None:
            out.append(f"Time: {self.simulation_time}s")
        return out
