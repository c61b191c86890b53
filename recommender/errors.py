"""
Error types shared by the API, the store adapters and the seeding scripts.
Each error carries the HTTP status the API responds with.
"""


class RecommenderError(Exception):
	"""Base error with an HTTP-like status code and a client-safe message."""

	status_code = 500
	default_message = "Internal Server Error"

	def __init__(self, message: str = None, status_code: int = None):
		self.message = message or self.default_message
		if status_code is not None:
			self.status_code = status_code
		super().__init__(self.message)


class ValidationError(RecommenderError):
	"""Bad request shape or out-of-range parameter."""
	status_code = 400
	default_message = "Invalid request"


class NotFoundError(RecommenderError):
	status_code = 404
	default_message = "Resource not found"


class UpstreamError(RecommenderError):
	"""A store or external API failed; the message never includes raw upstream details."""
	status_code = 500
	default_message = "Internal server error"


class ConfigurationError(RecommenderError):
	"""Required file or credential missing at startup."""
	status_code = 500
	default_message = "Invalid configuration"
