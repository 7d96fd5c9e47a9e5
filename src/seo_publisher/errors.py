# -*- coding: utf-8 -*-
"""
Error taxonomy of the publishing pipeline.

Only RenderFailure is ever raised to the caller. The other conditions have
a defined fallback: they are recorded on PipelineResult.issues and logged.
"""


class PipelineError(Exception):
    """Base class for pipeline conditions."""

    code = "pipeline_error"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class ExtractionAmbiguous(PipelineError):
    """No confident title/body decision; a documented fallback was used."""

    code = "extraction_ambiguous"


class ContentLossDetected(PipelineError):
    """Extracted body fell below the content-preservation floor."""

    code = "content_loss_detected"

    def __init__(self, body_length: int, reference_length: int, ratio: float):
        self.body_length = body_length
        self.reference_length = reference_length
        self.ratio = ratio
        super().__init__(
            f"Extracted body keeps {ratio:.0%} of the reference text "
            f"({body_length}/{reference_length} chars)"
        )


class InjectorUnavailable(PipelineError):
    """A link or media collaborator could not be reached."""

    code = "injector_unavailable"


class RenderFailure(PipelineError):
    """The markdown renderer failed; no safe partial HTML exists."""

    code = "render_failure"
