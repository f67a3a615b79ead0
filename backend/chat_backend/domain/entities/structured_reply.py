"""Domain entities for the parsed assistant reply."""

from dataclasses import dataclass, field


@dataclass
class ImageAnalysis:
    """Model-produced description of one uploaded image."""

    file_name: str
    analysis: str


@dataclass
class StructuredReply:
    """The ``{message, suggestions[, imageAnalyses]}`` object of a completion.

    ``message`` is never empty. ``suggestions`` holds exactly three items
    once the reply has passed through the suggestion finalizer.
    """

    message: str
    suggestions: list[str] = field(default_factory=list)
    image_analyses: list[ImageAnalysis] = field(default_factory=list)
