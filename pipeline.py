"""
pipeline.py — Request orchestration: extraction → analysis → scoring →
(optional) storage → summary.

Stages run in strict order and the first failure aborts the request; the
only exception is storage, which is isolated and can at worst degrade to
"stored with limitations". Progress is reported through ProgressTracker
events and never drives control flow.
"""

import concurrent.futures
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import requests

from analyzer import DocumentAnalysis, analyze_categories
from errors import AnalysisError, InvalidInput, Timeout
from extractors import extract_text
from fetcher import FETCH_TIMEOUT, fetch_document, is_url
from llm import OLLAMA_TIMEOUT, embed_text, generate_summary
from normalizer import DocumentType, NormalizedDocument, count_words, normalize
from risk import RiskFinding, assess_risks
from scorer import ComprehensiveScore, score_document
from storage import SKIPPED, STORED, ChunkStore, StorageResult, store_document

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "90"))    # seconds, whole request
UPLOAD_TIMEOUT  = float(os.environ.get("UPLOAD_TIMEOUT",  "120"))   # seconds, file uploads

MIN_TEXT_WORDS = 100
MIN_FILE_CHARS = 100


# ─────────────────────────────────────────────────────────────────────────────
# Stages & progress
# ─────────────────────────────────────────────────────────────────────────────

class Stage(str, Enum):
    CONTENT_EXTRACTION = "content_extraction"
    DOCUMENT_ANALYSIS  = "document_analysis"
    SCORING            = "scoring"
    STORAGE            = "storage"
    SUMMARY_GENERATION = "summary_generation"


PENDING     = "pending"
IN_PROGRESS = "in_progress"
COMPLETED   = "completed"
DEGRADED    = "degraded"
ERROR       = "error"

STAGE_MESSAGES = {
    Stage.CONTENT_EXTRACTION: {
        IN_PROGRESS: "Extracting document content...",
        COMPLETED:   "Document content extracted successfully",
        ERROR:       "Failed to extract content",
    },
    Stage.DOCUMENT_ANALYSIS: {
        IN_PROGRESS: "Analyzing document structure and content...",
        COMPLETED:   "Document analysis completed",
        ERROR:       "Document analysis failed",
    },
    Stage.SCORING: {
        IN_PROGRESS: "Calculating privacy and legal scores...",
        COMPLETED:   "Scoring completed",
        ERROR:       "Scoring failed",
    },
    Stage.STORAGE: {
        IN_PROGRESS: "Storing document for later retrieval...",
        COMPLETED:   "Document stored",
        DEGRADED:    "Document stored with limitations",
    },
    Stage.SUMMARY_GENERATION: {
        IN_PROGRESS: "Generating final summary...",
        COMPLETED:   "Analysis complete",
        ERROR:       "Failed to generate summary",
    },
}


@dataclass(frozen=True)
class ProgressEvent:
    stage:   Stage
    step:    int
    total:   int
    status:  str
    message: str

    def to_dict(self) -> dict:
        return {
            "stage":   self.stage.value,
            "step":    self.step,
            "total":   self.total,
            "status":  self.status,
            "message": self.message,
        }


class ProgressTracker:
    """Records stage transitions and forwards each one to an optional subscriber."""

    def __init__(self, stages: List[Stage], on_progress: Optional[Callable[[ProgressEvent], None]] = None):
        self.stages = stages
        self.events: List[ProgressEvent] = []
        self._on_progress = on_progress

    def update(self, stage: Stage, status: str) -> ProgressEvent:
        event = ProgressEvent(
            stage=stage,
            step=self.stages.index(stage) + 1,
            total=len(self.stages),
            status=status,
            message=STAGE_MESSAGES[stage][status],
        )
        self.events.append(event)
        logger.info("Progress: %d/%d - %s", event.step, event.total, event.message)
        if self._on_progress is not None:
            self._on_progress(event)
        return event

    def status_of(self, stage: Stage) -> str:
        for event in reversed(self.events):
            if event.stage is stage:
                return event.status
        return PENDING


class Deadline:
    """Wall-clock budget shared by every outbound call of one request."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    def check(self) -> None:
        if self.remaining() <= 0:
            raise Timeout()

    def budget(self, cap: Optional[float] = None) -> float:
        """Timeout to hand to the next outbound call; raises Timeout once spent."""
        self.check()
        remaining = self.remaining()
        return remaining if cap is None else min(cap, remaining)


# ─────────────────────────────────────────────────────────────────────────────
# Request / response
# ─────────────────────────────────────────────────────────────────────────────

URL_INPUT  = "url"
TEXT_INPUT = "text"
FILE_INPUT = "file"


@dataclass
class AnalysisRequest:
    message:       str = ""               # URL or pasted text
    filename:      Optional[str] = None
    file_bytes:    Optional[bytes] = None
    document_type: Optional[str] = None
    user_id:       Optional[str] = None
    store:         bool = False

    @property
    def input_kind(self) -> Optional[str]:
        if self.file_bytes is not None:
            return FILE_INPUT
        message = (self.message or "").strip()
        if is_url(message):
            return URL_INPUT
        if count_words(message) > MIN_TEXT_WORDS:
            return TEXT_INPUT
        return None


@dataclass
class AnalysisResponse:
    document:   NormalizedDocument
    title:      str
    analysis:   DocumentAnalysis
    risks:      List[RiskFinding]
    score:      ComprehensiveScore
    summary:    str
    sources:    List[dict]
    storage:    Optional[StorageResult] = None
    progress:   List[ProgressEvent] = field(default_factory=list)

    def document_info(self) -> dict:
        return {
            "title":                self.title,
            "document_type":        self.document.document_type.value,
            "word_count":           self.document.word_count,
            "reading_time_minutes": self.document.reading_time_minutes,
            "truncated":            self.document.truncated,
        }

    def analysis_info(self) -> dict:
        return {
            "categories": self.analysis.to_dict(),
            "risks":      [r.to_dict() for r in self.risks],
        }

    def to_dict(self) -> dict:
        d = self.score.to_dict()
        d.update({
            "summary":  self.summary,
            "sources":  self.sources,
            "document": self.document_info(),
            "analysis": self.analysis_info(),
            "storage":  self.storage.to_dict() if self.storage else None,
            "progress": [e.to_dict() for e in self.progress],
        })
        return d


# ─────────────────────────────────────────────────────────────────────────────
# Sources
# ─────────────────────────────────────────────────────────────────────────────

def build_sources(kind: str, origin: str, title: str, doc: NormalizedDocument,
                  analysis: DocumentAnalysis, score: ComprehensiveScore) -> List[dict]:
    doc_type = doc.document_type.value
    snippet = f"{doc_type} document ({doc.word_count} words, ~{doc.reading_time_minutes} min read)"
    if kind == URL_INPUT:
        source = "Privacy Policy" if doc.document_type is DocumentType.PRIVACY else "Terms of Service"
        sources = [{"title": title, "snippet": snippet, "url": origin, "source": source}]
    elif kind == FILE_INPUT:
        sources = [{"title": title, "snippet": snippet, "url": "#uploaded-file", "source": "Uploaded File"}]
    else:
        sources = [{"title": title, "snippet": snippet, "url": "#pasted-text", "source": "Pasted Text"}]

    findings = analysis.findings()
    found = sum(1 for f in findings if f.found)
    sources.append({
        "title":   "Document Analysis",
        "snippet": f"{found}/{len(findings)} categories addressed, {len(score.risk_factors)} risk factor(s)",
        "url":     "#analysis",
        "source":  "Document Analysis",
    })
    sources.append({
        "title":   f"Document Score: {score.overall_score}/100",
        "snippet": f"Rating: {score.rating} - {len(score.recommendations)} recommendations",
        "url":     "#score",
        "source":  "Document Score",
    })
    return sources


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator
# ─────────────────────────────────────────────────────────────────────────────

_TIMEOUT_ERRORS = (requests.exceptions.Timeout, TimeoutError, concurrent.futures.TimeoutError)


class AnalysisPipeline:
    """
    Runs one analysis request end to end.

    The external collaborators (fetch, extract, summarize, embed) are
    injectable so they can be swapped for other services or test doubles.
    """

    def __init__(self, fetch=fetch_document, extract=extract_text,
                 summarize=generate_summary, embed=embed_text,
                 chunk_store: Optional[ChunkStore] = None,
                 request_timeout: float = REQUEST_TIMEOUT,
                 upload_timeout: float = UPLOAD_TIMEOUT,
                 clock: Callable[[], float] = time.monotonic):
        self.fetch = fetch
        self.extract = extract
        self.summarize = summarize
        self.embed = embed
        self.chunk_store = chunk_store if chunk_store is not None else ChunkStore()
        self.request_timeout = request_timeout
        self.upload_timeout = upload_timeout
        self.clock = clock

    # ── stage runner ────────────────────────────────────────────────────────
    def _run_stage(self, stage: Stage, tracker: ProgressTracker, deadline: Deadline, fn, *args):
        tracker.update(stage, IN_PROGRESS)
        try:
            deadline.check()
            result = fn(*args)
            deadline.check()
        except AnalysisError as e:
            self._fail(e, stage, tracker)
            raise
        except _TIMEOUT_ERRORS as e:
            err = Timeout()
            self._fail(err, stage, tracker)
            raise err from e
        except Exception as e:
            logger.exception("Unexpected failure during %s", stage.value)
            err = AnalysisError(f"{STAGE_MESSAGES[stage][ERROR]}.")
            self._fail(err, stage, tracker)
            raise err from e
        tracker.update(stage, COMPLETED)
        return result

    @staticmethod
    def _fail(err: AnalysisError, stage: Stage, tracker: ProgressTracker) -> None:
        if err.stage is None:
            err.stage = stage.value
        err.progress = tracker.update(stage, ERROR).to_dict()

    # ── stages ──────────────────────────────────────────────────────────────
    def _extract_content(self, request: AnalysisRequest, kind: Optional[str], deadline: Deadline):
        declared = DocumentType.coerce(request.document_type)
        message = (request.message or "").strip()

        if kind == FILE_INPUT:
            text = self.extract(request.filename or "", request.file_bytes)
            doc = normalize(text, declared, min_chars=MIN_FILE_CHARS)
            return doc, request.filename or "Uploaded Document", "#uploaded-file"

        if kind == URL_INPUT:
            fetched = self.fetch(message, declared, timeout=deadline.budget(FETCH_TIMEOUT))
            doc = normalize(fetched.content, fetched.document_type)
            return doc, fetched.title, fetched.url

        if kind == TEXT_INPUT:
            doc = normalize(message, declared, min_words=MIN_TEXT_WORDS)
            return doc, "Pasted Legal Document", "#pasted-text"

        raise InvalidInput()

    def _analyze(self, doc: NormalizedDocument):
        return analyze_categories(doc), assess_risks(doc.cleaned_text, doc.document_type)

    def _store(self, doc: NormalizedDocument, user_id: str, deadline: Deadline) -> StorageResult:
        def embed(chunk):
            return self.embed(chunk, timeout=deadline.budget(OLLAMA_TIMEOUT))
        return store_document(doc.raw_text, user_id, self.chunk_store, embed=embed)

    # ── main entry point ────────────────────────────────────────────────────
    def run(self, request: AnalysisRequest,
            on_progress: Optional[Callable[[ProgressEvent], None]] = None) -> AnalysisResponse:
        kind = request.input_kind
        wants_storage = bool(request.store and request.user_id)
        stages = [Stage.CONTENT_EXTRACTION, Stage.DOCUMENT_ANALYSIS, Stage.SCORING]
        if wants_storage:
            stages.append(Stage.STORAGE)
        stages.append(Stage.SUMMARY_GENERATION)

        tracker = ProgressTracker(stages, on_progress)
        budget = self.upload_timeout if kind == FILE_INPUT else self.request_timeout
        deadline = Deadline(budget, clock=self.clock)

        doc, title, origin = self._run_stage(
            Stage.CONTENT_EXTRACTION, tracker, deadline, self._extract_content, request, kind, deadline)
        analysis, risks = self._run_stage(
            Stage.DOCUMENT_ANALYSIS, tracker, deadline, self._analyze, doc)
        score = self._run_stage(
            Stage.SCORING, tracker, deadline, score_document, analysis, doc.document_type, risks)

        storage = StorageResult(status=SKIPPED)
        if wants_storage:
            tracker.update(Stage.STORAGE, IN_PROGRESS)
            storage = self._store(doc, request.user_id, deadline)
            tracker.update(Stage.STORAGE, COMPLETED if storage.status == STORED else DEGRADED)

        response = AnalysisResponse(
            document=doc,
            title=title,
            analysis=analysis,
            risks=risks,
            score=score,
            summary="",
            sources=build_sources(kind, origin, title, doc, analysis, score),
            storage=storage,
            progress=tracker.events,
        )
        response.summary = self._run_stage(
            Stage.SUMMARY_GENERATION, tracker, deadline, self._summarize, response, deadline)
        return response

    def _summarize(self, response: AnalysisResponse, deadline: Deadline) -> str:
        return self.summarize(
            response.document_info(),
            response.analysis_info(),
            response.score.to_dict(),
            timeout=deadline.budget(),
        )


def analyze_document(request: AnalysisRequest, on_progress=None, **collaborators) -> AnalysisResponse:
    """Run a single request through a pipeline built from the default collaborators."""
    return AnalysisPipeline(**collaborators).run(request, on_progress=on_progress)
