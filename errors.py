"""
errors.py — Error kinds raised by the analysis pipeline.

Every failure carries a short user-facing message, an HTTP-equivalent
status code and (once the orchestrator has seen it) the pipeline stage
it happened in. Raw upstream error text never reaches the client.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure surfaced to the client."""
    kind = "Unexpected"
    status_code = 500
    default_message = "Failed to process request."

    def __init__(self, message: Optional[str] = None, stage: Optional[str] = None):
        self.message = message or self.default_message
        self.stage = stage
        self.progress: Optional[dict] = None   # last progress event, set by the pipeline
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error":    self.message,
            "kind":     self.kind,
            "stage":    self.stage,
            "progress": self.progress,
        }


class InvalidInput(AnalysisError):
    kind = "InvalidInput"
    status_code = 400
    default_message = "Please provide a valid URL or paste the document text (minimum 100 words)."


class FetchFailure(AnalysisError):
    kind = "FetchFailure"
    status_code = 400

    def __init__(self, url: str, message: Optional[str] = None, stage: Optional[str] = None):
        self.url = url
        super().__init__(
            message or f"Unable to fetch the document at {url}. Please check the URL and try again.",
            stage,
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["url"] = self.url
        return d


class ExtractionFailure(AnalysisError):
    kind = "ExtractionFailure"
    status_code = 400
    default_message = "Failed to read the file. It may be corrupted or password-protected."


class InsufficientContent(AnalysisError):
    kind = "InsufficientContent"
    status_code = 400
    default_message = "Document appears to be empty or contains insufficient text for analysis."


class Timeout(AnalysisError):
    kind = "Timeout"
    status_code = 408
    default_message = "Request timed out. Please try again with a shorter document."


class UpstreamFailure(AnalysisError):
    kind = "UpstreamFailure"
    status_code = 502
    default_message = "The summary service failed to respond. Please try again."

    def __init__(self, message: Optional[str] = None, stage: Optional[str] = None,
                 rate_limited: bool = False):
        self.rate_limited = rate_limited
        if rate_limited:
            self.status_code = 429
            message = message or "Rate limit exceeded. Please wait a moment and try again."
        super().__init__(message, stage)
