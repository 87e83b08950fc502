"""Error taxonomy for invoice extraction.

Collaborators raise these exceptions; the processing pipeline catches them at
stage boundaries and returns them as values on the Result model, so callers
never see an exception escape from a process_* call.
"""


class ExtractionError(Exception):
    """Base class for every failure the extraction pipeline can report."""


class ReadFailure(ExtractionError):
    """Input bytes could not be read or structurally parsed."""


class XMLParseFailure(ExtractionError):
    """The XML collaborator rejected the document."""


class ExtractorUnavailable(ExtractionError):
    """No model client is configured for model-based extraction."""


class NoExtractableText(ExtractionError):
    """The PDF text miner produced no usable text."""


class ModelCallFailure(ExtractionError):
    """The model-call collaborator failed to return a response."""


class ResponseDecodeFailure(ExtractionError):
    """The model response did not contain a decodable JSON payload."""


class RenderFailure(ExtractionError):
    """No external rasterizer could render the PDF."""


class NoImagesProduced(ExtractionError):
    """The rasterizer ran but produced no page images."""


class UnsupportedInput(ExtractionError):
    """The input format is not one the pipeline can process."""


class CompositeExtractionFailure(ExtractionError):
    """Every stage of a multi-stage extraction failed.

    Attributes:
        causes: The per-stage errors, in the order the stages ran
    """

    def __init__(self, message: str, causes: list[ExtractionError]) -> None:
        super().__init__(message)
        self.causes = tuple(causes)
