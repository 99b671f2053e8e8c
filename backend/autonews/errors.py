"""Exception taxonomy shared by the job store, adapters and orchestrator.

Stage errors raised by adapters are caught at the orchestrator boundary and
recorded on the job; they never escape ``JobPipeline.process``.
"""


class AutoNewsError(Exception):
    """Base class for all AutoNews errors."""


class NotFound(AutoNewsError):
    """Job or artifact does not exist."""


class JobValidationError(AutoNewsError):
    """Job spec is malformed."""


class InvalidTransition(AutoNewsError):
    """Status change is not allowed by the job state machine."""


class ArtifactOrderError(AutoNewsError):
    """Artifact created twice or before its predecessor."""


class NoArticlesFound(AutoNewsError):
    """Article source returned no results for the job's topic."""


class UpstreamUnavailable(AutoNewsError):
    """External service credential missing or service down."""


class UpstreamTimeout(AutoNewsError):
    """External service did not answer in time."""


class UpstreamBadResponse(AutoNewsError):
    """External service returned an error or an unusable payload."""


class SummarizerUnavailable(UpstreamUnavailable):
    pass


class SummarizerTimeout(UpstreamTimeout):
    pass


class SummarizerError(UpstreamBadResponse):
    pass


class RenderResponseIncomplete(UpstreamBadResponse):
    """Render result is missing the primary video URL."""


class PublishError(UpstreamBadResponse):
    pass
