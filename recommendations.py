"""
recommendations.py — Actionable advice derived from a scored document.
"""

from typing import List, Sequence

from analyzer import DocumentAnalysis
from normalizer import DocumentType

MAX_RECOMMENDATIONS = 6


def generate_recommendations(analysis: DocumentAnalysis, document_type,
                             risk_factors: Sequence[str], overall_score: int) -> List[str]:
    """
    Build recommendations in fixed priority order and keep the first six.

    Order: per-category thresholds, risk factors, document-type checks,
    then a single score-band remark.
    """
    doc_type = DocumentType.coerce(document_type)
    items = []

    # ── Category thresholds ─────────────────────────────────────────────────
    if analysis.data_collection.raw_score < 7:
        items.append("Improve transparency about data collection practices.")
    if analysis.user_rights.raw_score < 7:
        items.append("Clearly outline user rights and how to exercise them.")
    if analysis.data_sharing.raw_score > 5:
        items.append("Reduce third-party data sharing or improve disclosure.")
    if analysis.security.raw_score < 7:
        items.append("Strengthen security measures and disclosures.")

    # ── Risk factors ────────────────────────────────────────────────────────
    if risk_factors:
        items.append(f"Review the {len(risk_factors)} risk factor(s) flagged in this document before agreeing.")

    # ── Document-type checks ────────────────────────────────────────────────
    if doc_type is DocumentType.PRIVACY and overall_score < 60:
        items.append("Check whether the policy meets GDPR and CCPA requirements for notice, consent and user rights.")
    if doc_type is DocumentType.NDA:
        items.append("Confirm the scope and duration of the confidentiality obligations before signing.")
    if doc_type is DocumentType.CONTRACT:
        contract = analysis.contract_terms
        if contract is None or not contract.found or contract.raw_score < 5:
            items.append("Make sure payment, termination and liability terms are spelled out clearly.")
    if doc_type is DocumentType.EULA:
        items.append("Check the license restrictions on installing, copying and transferring the software.")
    if doc_type is DocumentType.COOKIES and overall_score < 60:
        items.append("Verify that non-essential cookies require opt-in consent and can be refused.")

    # ── Score band ──────────────────────────────────────────────────────────
    if overall_score < 40:
        items.append("Consider seeking legal advice before accepting this document.")
    elif overall_score < 60:
        items.append("Read the flagged sections carefully before agreeing.")
    elif overall_score < 80:
        items.append("The document is reasonably user-friendly but leaves room for improvement.")

    return items[:MAX_RECOMMENDATIONS]
