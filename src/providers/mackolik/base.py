from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from core.models import FixtureRecord


class FixtureSourceBase(ABC):
    """
    Interfaccia astratta per una sorgente di fixture con quote.

    Le implementazioni concrete mappano i codici mercato del provider nel
    vocabolario di analysis.markets e scartano gli stati non gestiti
    (es. rinviate) prima di restituire i record.
    """

    @abstractmethod
    def fetch_fixtures(self, date: str) -> List[FixtureRecord]:
        """
        Recupera le fixture di una data.

        Parametri:
            date: data in formato YYYY-MM-DD.

        Ritorna:
            Lista di FixtureRecord (eventualmente vuota).
        """
        raise NotImplementedError
