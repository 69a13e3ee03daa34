"""Public interface definitions for external collaborators.

The DataStage cache talks to the outside world only through the abstract
base classes defined here.  Concrete adapters are injected at construction
time, so unit tests can substitute in-memory fakes.

    Interface            →  Concrete implementations
    ──────────────────────────────────────────────────────────────
    IRepositoryClient    →  IGCRestClient (stagelineage.providers.igc)
    IProcessTranslator   →  ProcessMapping (stagelineage.services)
"""

from stagelineage.interfaces.process_translator import IProcessTranslator
from stagelineage.interfaces.repository_client import IRepositoryClient

__all__ = [
    "IProcessTranslator",
    "IRepositoryClient",
]
