import os
import sys

# Keep the summary generator offline for the whole run.
os.environ.setdefault("OLLAMA_ENABLED", "false")
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from analyzer import CategoryFinding

FILLER = "Please read this document carefully before using the service."


def pad(text, words=150):
    while len(text.split()) < words:
        text += " " + FILLER
    return text


def make_finding(name, raw_score, found=None, sentences=("A matched sentence for the category.",)):
    if found is None:
        found = raw_score > 0
    return CategoryFinding(
        name=name,
        found=found,
        matched_sentences=tuple(sentences) if found else (),
        raw_score=raw_score,
    )


def fake_summary(document, analysis, score, timeout=None):
    return f"Summary of a {document['document_type']} document scoring {score['overall_score']}."


def fake_embed(text, timeout=None):
    return [0.1, 0.2, float(len(text))]


@pytest.fixture
def privacy_text():
    return pad(
        "This privacy policy explains how we handle your information. "
        "We collect your email address and usage data when you create an account. "
        "We may sell your data to third parties for marketing purposes. "
        "You have the right to access, correct or delete your personal data at any time. "
        "We use encryption and other safeguards to protect your information from unauthorized access."
    )


@pytest.fixture
def nda_text():
    return pad(
        "This agreement is made between the disclosing party and the receiving party. "
        "The receiving party shall maintain perpetual confidentiality of all confidential information. "
        "Trade secret material must be returned on request and used only on a need to know basis."
    )
