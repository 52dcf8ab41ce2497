
class InvestifyError(Exception):
	pass

class InvalidInputError(InvestifyError):
	"""A step's input precondition failed; the step is not attempted."""
	pass

class UpstreamError(InvestifyError):
	"""The completion or research call failed (transport, auth, timeout, format)."""
	pass
