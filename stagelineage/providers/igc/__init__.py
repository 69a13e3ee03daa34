"""IGC metadata repository providers."""

from stagelineage.providers.igc.rest_client import IGCRestClient

__all__ = ["IGCRestClient"]
