from app.client.api_client import CampusQAClient, APIError, SessionExpiredError

__all__ = ["CampusQAClient", "APIError", "SessionExpiredError"]
