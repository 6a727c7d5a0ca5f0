"""Learning loop: pattern tracking, rule suggestion, and feedback."""

from .feedback import Feedback, FeedbackHandler, FeedbackStats, FeedbackType, ProblematicRule
from .suggester import RuleSuggester, RuleValidation, SuggestedRule
from .tracker import PatternStats, PatternTracker, filename_family, infer_signals

__all__ = [
    "Feedback",
    "FeedbackHandler",
    "FeedbackStats",
    "FeedbackType",
    "PatternStats",
    "PatternTracker",
    "ProblematicRule",
    "RuleSuggester",
    "RuleValidation",
    "SuggestedRule",
    "filename_family",
    "infer_signals",
]
