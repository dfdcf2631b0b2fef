"""
llm.py — Ollama integration for the narrative summary and chunk embeddings.

Talks to an Ollama instance via its REST API. Unlike the deterministic
analysis, these calls can fail: timeouts surface as Timeout and any other
upstream problem as UpstreamFailure (rate limiting detected separately).
When the LLM is disabled a plain five-section summary is rendered from the
structured result instead.
"""

import json
import logging
import os
from typing import List, Optional

import requests

from errors import Timeout, UpstreamFailure

logger = logging.getLogger(__name__)

# ── Config (overridable via environment variables) ────────────────────────────
OLLAMA_BASE_URL    = os.environ.get("OLLAMA_BASE_URL",    "http://ollama:11434")
OLLAMA_MODEL       = os.environ.get("OLLAMA_MODEL",       "llama3.2")
OLLAMA_EMBED_MODEL = os.environ.get("OLLAMA_EMBED_MODEL", "nomic-embed-text")
OLLAMA_TIMEOUT     = int(os.environ.get("OLLAMA_TIMEOUT", "60"))   # seconds
OLLAMA_ENABLED     = os.environ.get("OLLAMA_ENABLED", "true").lower() != "false"


# ─────────────────────────────────────────────────────────────────────────────
# Ollama client
# ─────────────────────────────────────────────────────────────────────────────

def _is_rate_limited(resp: Optional[requests.Response], detail: str = "") -> bool:
    if resp is not None and resp.status_code == 429:
        return True
    return "rate limit" in detail.lower() or "quota" in detail.lower()


def _post(path: str, payload: dict, timeout: float) -> dict:
    """POST to Ollama and return the decoded JSON body, raising pipeline errors."""
    resp = None
    try:
        resp = requests.post(f"{OLLAMA_BASE_URL}{path}", json=payload, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.Timeout as e:
        logger.warning("Ollama %s timed out after %.1fs", path, timeout)
        raise Timeout() from e
    except requests.exceptions.RequestException as e:
        body = resp.text if resp is not None else str(e)
        logger.warning("Ollama %s error: %s", path, e)
        raise UpstreamFailure(rate_limited=_is_rate_limited(resp, body)) from e
    except ValueError as e:
        logger.warning("Ollama %s returned invalid JSON", path)
        raise UpstreamFailure() from e


def _ollama_generate(prompt: str, system: str = "", timeout: float = OLLAMA_TIMEOUT) -> str:
    payload = {
        "model":  OLLAMA_MODEL,
        "prompt": prompt,
        "stream": False,
        "options": {
            "temperature":  0.2,
            "num_predict":  900,
            "top_p":        0.9,
        },
    }
    if system:
        payload["system"] = system
    text = (_post("/api/generate", payload, timeout).get("response") or "").strip()
    if not text:
        raise UpstreamFailure("The summary service returned an empty response.")
    return text


def embed_text(text: str, timeout: float = OLLAMA_TIMEOUT) -> List[float]:
    """Return the embedding vector for one chunk of text."""
    data = _post("/api/embeddings", {"model": OLLAMA_EMBED_MODEL, "prompt": text}, timeout)
    embedding = data.get("embedding")
    if not embedding:
        raise UpstreamFailure("Failed to generate embeddings.")
    return embedding


# ─────────────────────────────────────────────────────────────────────────────
# Prompts
# ─────────────────────────────────────────────────────────────────────────────

def _system_prompt(document: dict) -> str:
    return f"""You are a legal document analyzer. Based on the analysis results provided, \
create a comprehensive but concise summary.

DOCUMENT TYPE: {document.get("document_type")}
WORD COUNT: {document.get("word_count")}
READING TIME: {document.get("reading_time_minutes")} minutes

Your response should be structured as follows:
1. **Document Summary**: Brief overview of what this document covers
2. **Key Findings**: Most important clauses and provisions
3. **Risk Assessment**: High and medium risk factors identified
4. **Score**: Overall score with breakdown
5. **Recommendations**: Specific advice for users

Be direct, informative, and focus on what users need to know to make informed decisions."""


def _prompt_summary(analysis: dict, score: dict) -> str:
    return f"""Please analyze this legal document analysis:

ANALYSIS RESULTS:
{json.dumps(analysis, indent=2)}

SCORE RESULTS:
{json.dumps(score, indent=2)}

Create a comprehensive summary that helps users understand what they're agreeing to."""


# ─────────────────────────────────────────────────────────────────────────────
# Offline summary  (used when the LLM is disabled)
# ─────────────────────────────────────────────────────────────────────────────

CATEGORY_TITLES = {
    "data_collection":       "Data collection",
    "user_rights":           "User rights",
    "data_sharing":          "Data sharing",
    "security":              "Security",
    "contract_terms":        "Contract terms",
    "confidentiality_terms": "Confidentiality terms",
}


def build_fallback_summary(document: dict, analysis: dict, score: dict) -> str:
    """Render the five-section summary straight from the structured result."""
    categories = analysis.get("categories", {})
    lines = [
        "1. **Document Summary**: "
        f"A {document.get('document_type')} document of {document.get('word_count')} words "
        f"(about {document.get('reading_time_minutes')} min read).",
        "",
        "2. **Key Findings**:",
    ]
    for name, finding in categories.items():
        title = CATEGORY_TITLES.get(name, name)
        if finding.get("found"):
            lines.append(f"   - {title}: {finding['details'][0]}")
        else:
            lines.append(f"   - {title}: not addressed.")

    lines += ["", "3. **Risk Assessment**:"]
    risk_factors = score.get("risk_factors") or []
    lines += [f"   - {r}" for r in risk_factors] or ["   - No high or medium risk phrases detected."]

    lines += [
        "",
        f"4. **Score**: {score.get('overall_score')}/100 ({score.get('rating')}), "
        f"risk penalty {score.get('risk_penalty')}.",
        "",
        "5. **Recommendations**:",
    ]
    lines += [f"   - {r}" for r in score.get("recommendations") or []] or ["   - No specific recommendations."]
    return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Main public function
# ─────────────────────────────────────────────────────────────────────────────

def generate_summary(document: dict, analysis: dict, score: dict,
                     timeout: float = OLLAMA_TIMEOUT) -> str:
    """
    Narrate the analysis and score in five sections.

    `timeout` is the caller's remaining budget; the request is never allowed
    to outlive it.
    """
    if not OLLAMA_ENABLED:
        logger.info("Ollama disabled via OLLAMA_ENABLED=false — using offline summary")
        return build_fallback_summary(document, analysis, score)

    return _ollama_generate(
        _prompt_summary(analysis, score),
        _system_prompt(document),
        timeout=min(timeout, OLLAMA_TIMEOUT),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Status helper  (used by the health endpoint)
# ─────────────────────────────────────────────────────────────────────────────

def ollama_status() -> dict:
    """Return Ollama connectivity info."""
    if not OLLAMA_ENABLED:
        return {"available": False, "reason": "Disabled via OLLAMA_ENABLED=false", "model": OLLAMA_MODEL}

    try:
        r = requests.get(f"{OLLAMA_BASE_URL}/api/tags", timeout=4)
        if r.status_code != 200:
            return {"available": False, "reason": f"HTTP {r.status_code}", "model": OLLAMA_MODEL}

        tags = r.json().get("models", [])
        model_names = [m.get("name", "") for m in tags]

        return {
            "available":    True,
            "model":        OLLAMA_MODEL,
            "model_loaded": any(OLLAMA_MODEL in n for n in model_names),
            "embed_model":  OLLAMA_EMBED_MODEL,
            "all_models":   model_names,
            "base_url":     OLLAMA_BASE_URL,
        }
    except (requests.exceptions.RequestException, ValueError) as e:
        return {"available": False, "reason": str(e), "model": OLLAMA_MODEL}
