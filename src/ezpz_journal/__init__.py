"""ezpz-journal: a personal forex and crypto trading journal.

Position sizing before entry, an active/closed trade lifecycle, and
performance metrics over closed trades.
"""

__version__ = "0.1.0"
