"""Адреса принтеров: станции кухни по категориям и принтер итоговых чеков."""
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class PrinterEndpoint:
    host: str
    port: int = 9100

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class PrinterConfig:
    """Категория печати → принтер; receipt: принтер итоговых чеков."""
    stations: Dict[str, PrinterEndpoint] = field(default_factory=dict)
    receipt: Optional[PrinterEndpoint] = None

    def endpoint_for(self, category: str) -> Optional[PrinterEndpoint]:
        return self.stations.get(category)
