"""
Export module — generates PDF, Word (.docx), and CSV reports from a
serialized analysis response (AnalysisResponse.to_dict()).
"""

import io
import csv
from datetime import datetime
from xml.sax.saxutils import escape


# ─────────────────────────────────────────────────────────────────────────────
# Shared helpers
# ─────────────────────────────────────────────────────────────────────────────

RATING_COLOR = {
    "green":  ( 76, 175, 132),
    "blue":   ( 66, 133, 244),
    "yellow": (244, 200,  66),
    "orange": (255, 152,   0),
    "red":    (255, 107, 122),
}

GOLD    = (212, 175,  55)
DARK    = ( 13,  13,  13)
GREY    = (100, 100, 100)
LGREY   = (220, 220, 220)
FLAG    = (220,  53,  69)

CATEGORY_TITLES = {
    "data_collection":       "Data Collection",
    "user_rights":           "User Rights",
    "data_sharing":          "Data Sharing",
    "security":              "Security",
    "contract_terms":        "Contract Terms",
    "confidentiality_terms": "Confidentiality Terms",
}

DISCLAIMER = ("This report is for informational purposes only and does not constitute legal advice. "
              "For important agreements, consult a qualified legal professional.")


def _now() -> str:
    return datetime.now().strftime("%B %d, %Y at %H:%M")


def _title(name: str) -> str:
    return CATEGORY_TITLES.get(name, name.replace("_", " ").title())


# ─────────────────────────────────────────────────────────────────────────────
# Full PDF report  (ReportLab)
# ─────────────────────────────────────────────────────────────────────────────

def export_pdf(report: dict) -> bytes:
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.units import mm
    from reportlab.lib import colors
    from reportlab.platypus import (
        SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle,
        HRFlowable, KeepTogether
    )

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        leftMargin=20*mm, rightMargin=20*mm,
        topMargin=18*mm, bottomMargin=18*mm,
        title="Legal Document Analysis Report"
    )

    W, _ = A4
    cw = W - 40*mm  # content width

    def rgb(t):  return colors.Color(*[v/255 for v in t])

    rating_rgb = RATING_COLOR.get(report["color"], GREY)
    rc      = rgb(rating_rgb)
    gold_c  = rgb(GOLD)
    dark_c  = rgb(DARK)
    grey_c  = rgb(GREY)
    lgrey_c = rgb(LGREY)

    base = getSampleStyleSheet()

    def sty(name, parent="Normal", **kw):
        return ParagraphStyle(name, parent=base[parent], **kw)

    s_title = sty("title", fontSize=20, leading=26, textColor=dark_c, spaceAfter=4, fontName="Helvetica-Bold")
    s_h2    = sty("h2",    fontSize=13, leading=18, textColor=dark_c, spaceBefore=14, spaceAfter=6, fontName="Helvetica-Bold")
    s_body  = sty("body",  fontSize=9,  leading=14, textColor=dark_c, spaceAfter=4)
    s_small = sty("small", fontSize=8,  leading=12, textColor=grey_c, spaceAfter=2)
    s_ev    = sty("ev",    fontSize=8,  leading=12, textColor=grey_c, leftIndent=12, spaceAfter=3)

    document = report["document"]
    story = []

    # ── Header ──────────────────────────────────────────────────────────────
    header_tbl = Table([[
        Paragraph("Legal Document Analysis Report", s_title),
        Paragraph(f"Generated {_now()}", s_small),
    ]], colWidths=[cw*0.75, cw*0.25])
    header_tbl.setStyle(TableStyle([
        ("VALIGN",        (0,0), (-1,-1), "BOTTOM"),
        ("ALIGN",         (1,0), (1,0),   "RIGHT"),
        ("BOTTOMPADDING", (0,0), (-1,-1), 8),
    ]))
    story.append(header_tbl)
    story.append(HRFlowable(width="100%", thickness=2, color=gold_c, spaceAfter=12))

    story.append(Paragraph(escape(document["title"]), s_body))
    story.append(Paragraph(
        f"{document['document_type'].upper()} &nbsp;·&nbsp; {document['word_count']} words "
        f"&nbsp;·&nbsp; ~{document['reading_time_minutes']} min read", s_small))
    story.append(Spacer(1, 6))

    # ── Score banner ────────────────────────────────────────────────────────
    score_tbl = Table([[
        Paragraph(f"<b>{report['rating']}</b>", sty("rk", fontSize=14, textColor=rc, fontName="Helvetica-Bold")),
        Paragraph(f"Risk penalty: {report['risk_penalty']} point(s) from "
                  f"{len(report['risk_factors'])} risk factor(s).", sty("rr", fontSize=9, leading=13, textColor=dark_c)),
        Paragraph(f"<b>{report['overall_score']}/100</b>", sty("rs", fontSize=14, textColor=rc, fontName="Helvetica-Bold", alignment=2)),
    ]], colWidths=[cw*0.25, cw*0.55, cw*0.2])
    score_tbl.setStyle(TableStyle([
        ("BACKGROUND",    (0,0), (-1,-1), rgb(tuple(int(v*0.15) + 215 for v in rating_rgb))),
        ("BOX",           (0,0), (-1,-1), 1.5, rc),
        ("VALIGN",        (0,0), (-1,-1), "MIDDLE"),
        ("LEFTPADDING",   (0,0), (-1,-1), 10),
        ("RIGHTPADDING",  (0,0), (-1,-1), 10),
        ("TOPPADDING",    (0,0), (-1,-1), 10),
        ("BOTTOMPADDING", (0,0), (-1,-1), 10),
    ]))
    story.append(KeepTogether([score_tbl]))
    story.append(Spacer(1, 10))

    # ── Breakdown ───────────────────────────────────────────────────────────
    story.append(Paragraph("Score Breakdown", s_h2))
    rows = [["Category", "Score", "What it measures"]]
    for name, entry in report["breakdown"].items():
        rows.append([_title(name), f"{entry['score']}/{entry['max_score']}", entry["description"]])
    bt = Table(rows, colWidths=[cw*0.3, cw*0.15, cw*0.55])
    bt.setStyle(TableStyle([
        ("BACKGROUND",     (0,0), (-1,0),  dark_c),
        ("TEXTCOLOR",      (0,0), (-1,0),  colors.white),
        ("FONTNAME",       (0,0), (-1,0),  "Helvetica-Bold"),
        ("FONTSIZE",       (0,0), (-1,-1), 8),
        ("ROWBACKGROUNDS", (0,1), (-1,-1), [colors.white, lgrey_c]),
        ("GRID",           (0,0), (-1,-1), 0.3, lgrey_c),
        ("LEFTPADDING",    (0,0), (-1,-1), 6),
        ("TOPPADDING",     (0,0), (-1,-1), 5),
        ("BOTTOMPADDING",  (0,0), (-1,-1), 5),
    ]))
    story.append(bt)

    # ── Key findings ────────────────────────────────────────────────────────
    story.append(Paragraph("Key Findings", s_h2))
    story.append(HRFlowable(width="100%", thickness=0.5, color=lgrey_c, spaceAfter=8))
    for name, finding in report["analysis"]["categories"].items():
        status = "Addressed" if finding["found"] else "Not addressed"
        block = [Paragraph(f"<b>{_title(name)}</b> &nbsp;<font color='#888' size='7'>{status.upper()}</font>", s_body)]
        block += [Paragraph(f"<i>&ldquo;{escape(ev[:200])}&rdquo;</i>", s_ev) for ev in finding["details"][:2]]
        story.append(KeepTogether(block))

    # ── Risk factors ────────────────────────────────────────────────────────
    story.append(Paragraph("Risk Factors", s_h2))
    story.append(HRFlowable(width="100%", thickness=0.5, color=lgrey_c, spaceAfter=8))
    if report["risk_factors"]:
        for label in report["risk_factors"]:
            story.append(Paragraph(f"<font color='#dc3545'>&#9632;</font> {escape(label)}", s_body))
    else:
        story.append(Paragraph("No high or medium risk phrases detected.", s_small))

    # ── Recommendations ─────────────────────────────────────────────────────
    story.append(Paragraph("Recommendations", s_h2))
    story.append(HRFlowable(width="100%", thickness=0.5, color=lgrey_c, spaceAfter=8))
    for i, item in enumerate(report["recommendations"], 1):
        t = Table([[
            Paragraph(f"<b>{i}</b>", sty(f"cn{i}", fontSize=9, textColor=gold_c, fontName="Helvetica-Bold", alignment=1)),
            Paragraph(escape(item), s_body),
        ]], colWidths=[10*mm, cw - 10*mm])
        t.setStyle(TableStyle([
            ("VALIGN",        (0,0), (-1,-1), "TOP"),
            ("TOPPADDING",    (0,0), (-1,-1), 4),
            ("BOTTOMPADDING", (0,0), (-1,-1), 4),
            ("LINEBELOW",     (0,0), (-1,0),  0.3, lgrey_c),
        ]))
        story.append(t)

    # ── Summary ─────────────────────────────────────────────────────────────
    if report.get("summary"):
        story.append(Paragraph("Summary", s_h2))
        for line in report["summary"].splitlines():
            if line.strip():
                story.append(Paragraph(escape(line.strip()).replace("**", ""), s_body))

    # ── Footer ──────────────────────────────────────────────────────────────
    story.append(Spacer(1, 16))
    story.append(HRFlowable(width="100%", thickness=0.5, color=lgrey_c))
    story.append(Paragraph(DISCLAIMER, sty("foot", fontSize=7, leading=10, textColor=grey_c, spaceAfter=0)))

    doc.build(story)
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# Word (.docx) export
# ─────────────────────────────────────────────────────────────────────────────

def export_word(report: dict) -> bytes:
    from docx import Document
    from docx.shared import Pt, RGBColor, Inches, Cm

    doc = Document()

    for section in doc.sections:
        section.top_margin    = Cm(2)
        section.bottom_margin = Cm(2)
        section.left_margin   = Cm(2.5)
        section.right_margin  = Cm(2.5)

    def add_para(text="", bold=False, italic=False, color=None, size=10, indent=0):
        p = doc.add_paragraph()
        if indent:
            p.paragraph_format.left_indent = Inches(indent)
        run = p.add_run(text)
        run.bold, run.italic = bold, italic
        run.font.size = Pt(size)
        if color: run.font.color.rgb = RGBColor(*color)
        return p

    document = report["document"]

    # ── Title ────────────────────────────────────────────────────────────────
    title = doc.add_heading("Legal Document Analysis Report", 0)
    title.runs[0].font.color.rgb = RGBColor(*DARK)
    add_para(f"Generated: {_now()}", color=GREY, size=9)
    add_para(document["title"], bold=True)
    add_para(f"Type: {document['document_type']}  ·  {document['word_count']} words  ·  "
             f"~{document['reading_time_minutes']} min read", size=9)

    # ── Score ────────────────────────────────────────────────────────────────
    doc.add_heading("Overall Score", 1)
    p = doc.add_paragraph()
    run = p.add_run(f"{report['overall_score']}/100  ({report['rating']})")
    run.bold = True; run.font.size = Pt(14)
    run.font.color.rgb = RGBColor(*RATING_COLOR.get(report["color"], GREY))
    add_para(f"Risk penalty: {report['risk_penalty']}", size=9)

    table = doc.add_table(rows=1, cols=3)
    table.style = "Table Grid"
    hdr = table.rows[0].cells
    hdr[0].text, hdr[1].text, hdr[2].text = "Category", "Score", "Description"
    for name, entry in report["breakdown"].items():
        row = table.add_row().cells
        row[0].text = _title(name)
        row[1].text = f"{entry['score']}/{entry['max_score']}"
        row[2].text = entry["description"]

    # ── Key findings ─────────────────────────────────────────────────────────
    doc.add_heading("Key Findings", 1)
    for name, finding in report["analysis"]["categories"].items():
        p = doc.add_paragraph(style="List Bullet")
        run = p.add_run(f"{_title(name)}: {'addressed' if finding['found'] else 'not addressed'}")
        run.bold = True; run.font.size = Pt(10)
        for ev in finding["details"][:2]:
            add_para(f'"{ev[:200]}"', italic=True, color=GREY, size=8, indent=0.25)

    # ── Risk factors ─────────────────────────────────────────────────────────
    doc.add_heading("Risk Factors", 1)
    if report["risk_factors"]:
        for label in report["risk_factors"]:
            p = doc.add_paragraph(style="List Bullet")
            run = p.add_run(label)
            run.font.size = Pt(9); run.font.color.rgb = RGBColor(*FLAG)
    else:
        add_para("No high or medium risk phrases detected.", color=GREY, size=9)

    # ── Recommendations ──────────────────────────────────────────────────────
    doc.add_heading("Recommendations", 1)
    for item in report["recommendations"]:
        doc.add_paragraph(style="List Number").add_run(item).font.size = Pt(9)

    # ── Summary ──────────────────────────────────────────────────────────────
    if report.get("summary"):
        doc.add_heading("Summary", 1)
        for line in report["summary"].splitlines():
            if line.strip():
                add_para(line.strip().replace("**", ""), size=9)

    add_para(DISCLAIMER, italic=True, color=GREY, size=8)

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
# CSV export
# ─────────────────────────────────────────────────────────────────────────────

def export_csv(report: dict) -> bytes:
    buf = io.StringIO()
    w = csv.writer(buf)
    document = report["document"]

    # ── Summary ──────────────────────────────────────────────────────────────
    w.writerow(["SECTION", "FIELD", "VALUE"])
    w.writerow(["Document", "Title",         document["title"]])
    w.writerow(["Document", "Type",          document["document_type"]])
    w.writerow(["Document", "Word Count",    document["word_count"]])
    w.writerow(["Document", "Reading Time",  document["reading_time_minutes"]])
    w.writerow(["Score",    "Overall Score", report["overall_score"]])
    w.writerow(["Score",    "Rating",        report["rating"]])
    w.writerow(["Score",    "Risk Penalty",  report["risk_penalty"]])
    w.writerow([])

    # ── Breakdown ────────────────────────────────────────────────────────────
    w.writerow(["BREAKDOWN"])
    w.writerow(["Category", "Score", "Max Score", "Description"])
    for name, entry in report["breakdown"].items():
        w.writerow([_title(name), entry["score"], entry["max_score"], entry["description"]])
    w.writerow([])

    # ── Findings ─────────────────────────────────────────────────────────────
    w.writerow(["FINDINGS"])
    w.writerow(["Category", "Found", "Raw Score", "Evidence"])
    for name, finding in report["analysis"]["categories"].items():
        w.writerow([_title(name), "YES" if finding["found"] else "NO",
                    finding["score"], " | ".join(finding["details"])])
    w.writerow([])

    # ── Risks ────────────────────────────────────────────────────────────────
    w.writerow(["RISK FACTORS"])
    w.writerow(["Severity", "Phrase"])
    for risk in report["analysis"]["risks"]:
        w.writerow([risk["severity"], risk["phrase"]])
    w.writerow([])

    # ── Recommendations ──────────────────────────────────────────────────────
    w.writerow(["RECOMMENDATIONS"])
    w.writerow(["#", "Action"])
    for i, item in enumerate(report["recommendations"], 1):
        w.writerow([i, item])

    return buf.getvalue().encode("utf-8-sig")  # BOM for Excel compatibility
