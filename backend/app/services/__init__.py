from app.services.reputation_ledger import ReputationLedger, reputation_ledger
from app.services.session_service import SessionService, session_service
from app.services.question_service import QuestionService, question_service
from app.services.contributor_service import ContributorService, contributor_service

__all__ = [
    # Reputation
    "ReputationLedger",
    "reputation_ledger",
    # Accounts and sessions
    "SessionService",
    "session_service",
    # Q&A
    "QuestionService",
    "question_service",
    "ContributorService",
    "contributor_service",
]
