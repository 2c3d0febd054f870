"""
DraftKernel - Basisklassen für Kernel-Operationen
=================================================

Gemeinsamer Ergebnis-Typ und abstrakte Basis für Trim/Extend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional
from enum import Enum, auto


class ResultStatus(Enum):
    """Status einer Operation."""
    SUCCESS = auto()
    WARNING = auto()  # Erfolgreich, aber Entity unverändert
    NO_TARGET = auto()  # Kein Ziel / nicht unterstützter Typ
    NO_INTERSECTIONS = auto()  # Keine Schnittpunkte
    ERROR = auto()


@dataclass
class OperationResult:
    """
    Strukturiertes Ergebnis einer Kernel-Operation.

    Ermöglicht klare Unterscheidung zwischen Erfolg, Warnung und Fehler.
    """
    status: ResultStatus
    message: str = ""
    data: Any = None

    @property
    def success(self) -> bool:
        return self.status in (ResultStatus.SUCCESS, ResultStatus.WARNING)

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    # Zusätzliche Felder von Subklassen (entity, segment, ...) gehen über **fields
    @classmethod
    def ok(cls, message: str = "", data: Any = None, **fields):
        return cls(ResultStatus.SUCCESS, message, data, **fields)

    @classmethod
    def warning(cls, message: str, data: Any = None, **fields):
        return cls(ResultStatus.WARNING, message, data, **fields)

    @classmethod
    def no_target(cls, message: str = "Kein Ziel gefunden", **fields):
        return cls(ResultStatus.NO_TARGET, message, **fields)

    @classmethod
    def no_intersections(cls, message: str = "Keine Schnittpunkte", data: Any = None, **fields):
        return cls(ResultStatus.NO_INTERSECTIONS, message, data, **fields)

    @classmethod
    def error(cls, message: str):
        return cls(ResultStatus.ERROR, message)


class KernelOperation(ABC):
    """
    Abstrakte Basisklasse für Kernel-Operationen.

    Operationen sind zustandslos bis auf das letzte Ergebnis; Entities
    werden nie verändert, nur ersetzt.
    """

    def __init__(self):
        self._last_result: Optional[OperationResult] = None

    @property
    def last_result(self) -> Optional[OperationResult]:
        """Letztes Ergebnis der Operation."""
        return self._last_result

    def _remember(self, result: OperationResult) -> OperationResult:
        self._last_result = result
        return result

    @abstractmethod
    def execute(self, *args, **kwargs) -> OperationResult:
        """
        Führt die Operation aus.

        Returns:
            OperationResult mit Status und Details
        """
        pass

    def can_execute(self, *args, **kwargs) -> bool:
        """
        Prüft ob die Operation ausgeführt werden kann.
        Override in Subklassen für Validierung.
        """
        return True
