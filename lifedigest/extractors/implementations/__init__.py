"""Digest sections, one extractor per section."""

from __future__ import annotations

from lifedigest.extractors.implementations.action_items import ActionItemsExtractor
from lifedigest.extractors.implementations.contacts import ContactsExtractor
from lifedigest.extractors.implementations.decisions import DecisionsExtractor
from lifedigest.extractors.implementations.speech import SpeechAnalysisExtractor
from lifedigest.extractors.implementations.summary import SummaryExtractor
from lifedigest.extractors.implementations.topics import TopicsExtractor

# Registration order; admission order comes from each extractor's priority
DEFAULT_EXTRACTORS = (
    SummaryExtractor,
    ActionItemsExtractor,
    DecisionsExtractor,
    ContactsExtractor,
    TopicsExtractor,
    SpeechAnalysisExtractor,
)

__all__ = [
    "DEFAULT_EXTRACTORS",
    "ActionItemsExtractor",
    "ContactsExtractor",
    "DecisionsExtractor",
    "SpeechAnalysisExtractor",
    "SummaryExtractor",
    "TopicsExtractor",
]
