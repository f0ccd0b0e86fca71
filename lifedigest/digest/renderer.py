"""
Digest assembly: one execution report in, one email (subject, HTML, text) out.

Sections appear in the given order (normally registry admission order, so
the highest-priority section is first) instead of completion order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from html import escape

from lifedigest.extractors.report import ExecutionReport, ExtractorFailure, ExtractorOutcome

TEXT_DIVIDER = "-" * 40

_PAGE_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "max-width: 720px; margin: 0 auto; padding: 16px; color: #222;"
)


@dataclass(frozen=True)
class RenderedDigest:
    subject: str
    html: str
    text: str


def _ordered(
    report: ExecutionReport, order: Sequence[str] | None
) -> list[ExtractorOutcome | ExtractorFailure]:
    entries: list[ExtractorOutcome | ExtractorFailure] = [*report.results, *report.errors]
    if not order:
        return entries
    rank = {extractor_id: index for index, extractor_id in enumerate(order)}
    # Ids missing from order keep their relative position after the ranked ones
    return sorted(entries, key=lambda entry: rank.get(entry.extractor_id, len(rank)))


def _failure_html(failure: ExtractorFailure, details: bool) -> str:
    detail = (
        f'<p style="color: #888; font-size: 12px;">{escape(failure.message)}</p>' if details else ""
    )
    return (
        '<div style="padding: 10px; background-color: #fff4f4; border-left: 3px solid #ff6b6b;">'
        f"<h3>{escape(failure.extractor_id)}</h3>"
        "<p><em>This section could not be generated today.</em></p>"
        f"{detail}</div>"
    )


def _failure_text(failure: ExtractorFailure, details: bool) -> str:
    text = f"{failure.extractor_id}\n\nThis section could not be generated today"
    return f"{text} ({failure.message})." if details else f"{text}."


def render_digest(
    report: ExecutionReport,
    date_label: str,
    order: Sequence[str] | None = None,
    show_failures: bool = True,
    failure_details: bool = False,
) -> RenderedDigest:
    """
    Assemble the email for one execution report.

    Failed sections become placeholders unless show_failures is off. Error
    messages stay out of the email unless failure_details is set; they remain
    in the report and the logs.
    """
    html_sections: list[str] = []
    text_sections: list[str] = []

    for entry in _ordered(report, order):
        if isinstance(entry, ExtractorOutcome):
            html_sections.append(entry.result.html)
            text_sections.append(entry.result.text.strip())
        elif show_failures:
            html_sections.append(_failure_html(entry, failure_details))
            text_sections.append(_failure_text(entry, failure_details))

    if not html_sections:
        html_sections.append("<p><em>No digest sections were produced.</em></p>")
        text_sections.append("No digest sections were produced.")

    summary = report.summary
    footer = (
        f"{summary.success_count} of {summary.total_extractors} sections generated"
        f" in {summary.total_time_ms / 1000:.1f}s"
    )
    heading = f"Your day: {date_label}"

    body = '<hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;"/>'.join(
        f"<section>{section}</section>" for section in html_sections
    )
    html = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"/></head>"
        f'<body><div style="{_PAGE_STYLE}">'
        f"<h1>{escape(heading)}</h1>{body}"
        f'<p style="color: #999; font-size: 12px; margin-top: 32px;">{escape(footer)}</p>'
        "</div></body></html>"
    )
    text = f"{heading}\n\n" + f"\n\n{TEXT_DIVIDER}\n\n".join(text_sections) + f"\n\n{footer}\n"

    return RenderedDigest(subject=f"Daily Digest for {date_label}", html=html, text=text)
