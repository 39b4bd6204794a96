# Domain Scheduling Package
from .models import CardState, DueBatch, ProgressRecord, Rating, ReviewOutcome, SessionTally

__all__ = ["CardState", "DueBatch", "ProgressRecord", "Rating", "ReviewOutcome", "SessionTally"]
