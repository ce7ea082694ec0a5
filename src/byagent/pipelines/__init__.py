"""Refresh pipelines -- price/indicator agent and open interest monitor."""

from byagent.pipelines.agent import AgentPipeline, AgentUpdate
from byagent.pipelines.open_interest import OIState, OIUpdate, OpenInterestPipeline

__all__ = ["AgentPipeline", "AgentUpdate", "OIState", "OIUpdate", "OpenInterestPipeline"]
