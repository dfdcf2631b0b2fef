import pytest
import requests

from conftest import fake_embed, fake_summary, pad
from errors import AnalysisError, FetchFailure, InsufficientContent, InvalidInput, Timeout, UpstreamFailure
from fetcher import FETCH_TIMEOUT, FetchedDocument
from normalizer import DocumentType
from pipeline import (
    COMPLETED, DEGRADED, ERROR, IN_PROGRESS, AnalysisPipeline, AnalysisRequest, Deadline, Stage,
    analyze_document,
)
from storage import SKIPPED, STORED, STORED_WITH_LIMITATIONS, ChunkStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_pipeline(**kwargs):
    kwargs.setdefault("summarize", fake_summary)
    kwargs.setdefault("embed", fake_embed)
    return AnalysisPipeline(**kwargs)


def test_privacy_text_scenario(privacy_text):
    response = make_pipeline().run(AnalysisRequest(message=privacy_text, document_type="privacy"))

    assert response.analysis.data_collection.found
    assert any(r.severity == "High" and r.phrase == "sell your data" for r in response.risks)
    assert response.score.risk_penalty >= 3
    assert response.summary.startswith("Summary of a privacy document")
    assert response.storage.status == SKIPPED


def test_short_text_fails_at_content_extraction():
    with pytest.raises(InvalidInput) as exc:
        make_pipeline().run(AnalysisRequest(message="Too short to analyze."))
    assert exc.value.stage == Stage.CONTENT_EXTRACTION.value
    assert exc.value.progress["status"] == ERROR


@pytest.mark.parametrize("failure", [
    Timeout("Fetching the document timed out."),
    requests.exceptions.ReadTimeout("read timed out"),
])
def test_fetch_timeout_is_reported_as_timeout(failure):
    def fetch(url, document_type, timeout):
        raise failure

    with pytest.raises(Timeout) as exc:
        make_pipeline(fetch=fetch).run(AnalysisRequest(message="https://example.com/terms"))
    assert exc.value.kind == "Timeout"
    assert exc.value.stage == "content_extraction"
    assert exc.value.status_code == 408


def test_fetch_failure_keeps_url():
    def fetch(url, document_type, timeout):
        raise FetchFailure(url)

    with pytest.raises(FetchFailure) as exc:
        make_pipeline(fetch=fetch).run(AnalysisRequest(message="https://example.com/terms"))
    assert exc.value.to_dict()["url"] == "https://example.com/terms"


def test_url_input(privacy_text):
    seen = {}

    def fetch(url, document_type, timeout):
        seen["timeout"] = timeout
        return FetchedDocument(url=url, title="Example Privacy Policy", content=privacy_text,
                               document_type=DocumentType.PRIVACY)

    response = make_pipeline(fetch=fetch).run(AnalysisRequest(message="https://example.com/privacy"))
    assert seen["timeout"] <= FETCH_TIMEOUT
    assert response.title == "Example Privacy Policy"
    assert response.sources[0]["url"] == "https://example.com/privacy"
    assert response.sources[0]["source"] == "Privacy Policy"


def test_nda_scenario(nda_text):
    response = make_pipeline().run(AnalysisRequest(message=nda_text, document_type="nda"))

    assert response.analysis.confidentiality_terms.found
    assert {"perpetual", "indefinite"} & {r.phrase for r in response.risks if r.severity == "High"}
    assert "confidentiality_terms" in response.score.breakdown
    breakdown = response.score.breakdown
    assert breakdown["data_sharing"].max_score + breakdown["security"].max_score == 65
    assert breakdown["data_collection"].max_score == 15


def test_file_input(privacy_text):
    request = AnalysisRequest(filename="policy.txt", file_bytes=privacy_text.encode(), document_type="privacy")
    response = make_pipeline().run(request)
    assert response.title == "policy.txt"
    assert response.sources[0]["url"] == "#uploaded-file"


def test_file_with_too_little_text():
    request = AnalysisRequest(filename="empty.txt", file_bytes=b"hi there")
    with pytest.raises(InsufficientContent) as exc:
        make_pipeline().run(request)
    assert exc.value.stage == "content_extraction"


def test_sources_and_response_dict(privacy_text):
    response = make_pipeline().run(AnalysisRequest(message=privacy_text))
    assert [s["url"] for s in response.sources] == ["#pasted-text", "#analysis", "#score"]
    assert response.sources[2]["title"] == f"Document Score: {response.score.overall_score}/100"

    d = response.to_dict()
    for key in ("overall_score", "rating", "breakdown", "risk_factors", "recommendations",
                "summary", "sources", "document", "analysis", "progress"):
        assert key in d
    assert d["document"]["document_type"] == "privacy"   # sniffed from "terms"


def test_progress_events(privacy_text):
    events = []
    make_pipeline().run(AnalysisRequest(message=privacy_text), on_progress=events.append)

    assert [(e.stage, e.status) for e in events] == [
        (Stage.CONTENT_EXTRACTION, IN_PROGRESS), (Stage.CONTENT_EXTRACTION, COMPLETED),
        (Stage.DOCUMENT_ANALYSIS, IN_PROGRESS), (Stage.DOCUMENT_ANALYSIS, COMPLETED),
        (Stage.SCORING, IN_PROGRESS), (Stage.SCORING, COMPLETED),
        (Stage.SUMMARY_GENERATION, IN_PROGRESS), (Stage.SUMMARY_GENERATION, COMPLETED),
    ]
    assert {e.total for e in events} == {4}
    assert events[-1].step == 4
    assert events[-1].message == "Analysis complete"


def test_storage_stage(privacy_text):
    store = ChunkStore()
    events = []
    response = make_pipeline(chunk_store=store).run(
        AnalysisRequest(message=privacy_text, user_id="user-1", store=True), on_progress=events.append)

    assert response.storage.status == STORED
    assert len(store.chunks_for("user-1", response.storage.doc_id)) == response.storage.chunks_created
    assert (Stage.STORAGE, COMPLETED) in [(e.stage, e.status) for e in events]
    assert events[-1].total == 5


def test_storage_failure_degrades_without_failing(privacy_text):
    def broken_embed(text, timeout=None):
        raise UpstreamFailure("Failed to generate embeddings.")

    store = ChunkStore()
    events = []
    response = make_pipeline(embed=broken_embed, chunk_store=store).run(
        AnalysisRequest(message=privacy_text, user_id="user-1", store=True), on_progress=events.append)

    assert response.storage.status == STORED_WITH_LIMITATIONS
    assert len(store) == 0
    assert (Stage.STORAGE, DEGRADED) in [(e.stage, e.status) for e in events]
    assert events[-1].status == COMPLETED


def test_storage_skipped_without_user(privacy_text):
    response = make_pipeline().run(AnalysisRequest(message=privacy_text, store=True))
    assert response.storage.status == SKIPPED


def test_summary_upstream_failure(privacy_text):
    def summarize(document, analysis, score, timeout=None):
        raise UpstreamFailure(rate_limited=True)

    with pytest.raises(UpstreamFailure) as exc:
        make_pipeline(summarize=summarize).run(AnalysisRequest(message=privacy_text))
    assert exc.value.status_code == 429
    assert exc.value.stage == "summary_generation"


def test_unexpected_error_is_wrapped(privacy_text):
    def summarize(document, analysis, score, timeout=None):
        raise RuntimeError("boom")

    with pytest.raises(AnalysisError) as exc:
        make_pipeline(summarize=summarize).run(AnalysisRequest(message=privacy_text))
    assert exc.value.kind == "Unexpected"
    assert exc.value.message == "Failed to generate summary."
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_request_deadline(privacy_text):
    clock = FakeClock()

    def slow_summary(document, analysis, score, timeout=None):
        assert timeout == 90
        clock.now = 91
        return "late"

    with pytest.raises(Timeout) as exc:
        make_pipeline(summarize=slow_summary, request_timeout=90, clock=clock).run(
            AnalysisRequest(message=privacy_text))
    assert exc.value.stage == "summary_generation"


def test_deadline_budget():
    clock = FakeClock()
    deadline = Deadline(10, clock=clock)
    assert deadline.budget(5) == 5
    clock.now = 7
    assert deadline.budget(5) == 3
    clock.now = 10
    with pytest.raises(Timeout):
        deadline.budget()


def test_input_kind():
    assert AnalysisRequest(message="https://example.com").input_kind == "url"
    assert AnalysisRequest(message=pad("word")).input_kind == "text"
    assert AnalysisRequest(message="few words").input_kind is None
    assert AnalysisRequest(file_bytes=b"", filename="a.txt").input_kind == "file"


def test_analyze_document_helper(privacy_text):
    response = analyze_document(AnalysisRequest(message=privacy_text), summarize=fake_summary)
    assert 0 <= response.score.overall_score <= 100
