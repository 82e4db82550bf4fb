"""
An abstract class for services that load state
from the store on startup. Any service added to
the app is rebuilt once the store is open.
"""

from abc import ABC, abstractmethod


class Rebuildable(ABC):

    @abstractmethod
    async def _rebuild(self):
        pass
