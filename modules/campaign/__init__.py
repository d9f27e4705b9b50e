"""
Campaign Module.

Campaign run state machine plus the remote generation client seam.
"""

from .client import GenerationClient, RemoteGenerationClient
from .controller import CampaignController

__all__ = ["CampaignController", "GenerationClient", "RemoteGenerationClient"]
