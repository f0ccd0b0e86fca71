"""Daily conversation summary (markdown from Gemini, shown preformatted)."""

from __future__ import annotations

from html import escape

from lifedigest.extractors.implementations._llm import LLMExtractor, Section, llm_default_config

SUMMARY_PROMPT = """You are an expert conversation-summarizer.

TASK
Summarize the *actual* conversation content you are given.
- No fabrication, no boilerplate.
- If a section has zero content, omit that section entirely.
- Write in clear, short bullet points, max 15 words each.

OUTPUT
Return Markdown with the following headings (only when they contain content):

1. **Overview**: 2-3 sentences, outcomes first. Focus on what changed and what's next.

2. **Action Items & Deadlines**: table format
   | Owner | Task | Due | Status |
   |-------|------|-----|--------|
   - Only include due dates explicitly mentioned in the conversation
   - If no due date is mentioned, leave the Due column empty
   - Never infer or guess due dates

3. **Key Decisions**: bullet list of decisions that affect future work.

4. **Discussion Log**: "Topic Name (HH:MM - HH:MM, Duration)".

FORMAT RULES
- Use exact wording or tight paraphrases from the transcript.
- Use 24-hour times in the user's local zone if times are given.
- Do not exceed 120 words per section.
- Do not include meta-feedback or coaching notes.
- Every action item must have an owner."""


class SummaryExtractor(LLMExtractor):
    id = "summary"
    name = "Daily Summary"
    description = "Generates an AI-written summary of the day's conversations"

    section_title = "Daily Summary"
    empty_message = "No conversations to summarize."
    system_prompt = SUMMARY_PROMPT
    json_output = False

    default_config = llm_default_config(priority=100, max_tokens=512, temperature=0.3)

    def render(self, response_text: str) -> Section:
        summary = (response_text or "").strip()
        if not summary:
            return self.empty_section(warnings=["Model returned an empty summary"])
        return Section(
            html=(
                f"<h2>{self.section_title}</h2>"
                '<div style="white-space: pre-wrap; font-family: monospace; line-height: 1.5;">'
                f"{escape(summary)}</div>"
            ),
            text=f"{self.section_title}\n\n{summary}",
            item_count=1,
        )
