"""Domain entity for a backend model the orchestrator may try."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ModelCandidate:
    """One fully-specified (endpoint, model, credential) option.

    Candidates are built fresh per request; list order is the retry order.
    """

    endpoint: str
    model_id: str
    credential: str = field(repr=False)
