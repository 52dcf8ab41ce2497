"""Shared fixtures: canned model responses and fake completion calls."""

import json
import pytest

def fenced(obj) -> str:
	return f"Here is my analysis.\n\n```json\n{json.dumps(obj, indent=2)}\n```\n\nLet me know if you need more."

class FakeCompletion:
	"""Async stand-in for a completion call; records every prompt it receives."""

	def __init__(self, response: str = "", error: Exception = None):
		self.response = response
		self.error = error
		self.calls = []

	async def __call__(self, prompt, tools, system_prompt):
		self.calls.append({"prompt": prompt, "tools": tools, "system_prompt": system_prompt})
		if self.error is not None:
			raise self.error
		return self.response

@pytest.fixture
def investment_payload():
	return {
		"analysis": "## Overview\nA B2B payments startup with strong early traction.",
		"metrics": {
			"confidence_score": 0.7,
			"key_metrics": {
				"market_size": {"tam_usd": 5000000000, "growth_rate_percent": 12.5},
				"risk_assessment": {"overall_risk": "medium", "key_risks": ["Regulation", "Competition"]},
				"return_potential": {"estimated_roi_percent": 18.5, "time_horizon_years": 5},
			},
		},
	}

@pytest.fixture
def scoring_payload():
	def category(score, confidence):
		return {
			"score": score,
			"confidence": confidence,
			"strengths": ["Experienced founders"],
			"weaknesses": ["Thin sales team"],
			"assessment": "Solid but unproven.",
		}
	return {
		"scores": {
			"overall": 72,
			"team": category(80, 0.8),
			"market": category(75, 0.9),
			"technical": category(85, 0.7),
			"innovation": category(65, 0.6),
		},
		"recommendation": "consider",
		"confidence_level": 0.75,
		"key_insights": ["Strong founding team"],
		"risk_factors": ["Competitive market"],
	}

@pytest.fixture
def completions(investment_payload, scoring_payload):
	"""One fake per step, all succeeding with well-formed fenced JSON."""
	return {
		"investment": FakeCompletion(fenced(investment_payload)),
		"founder": FakeCompletion(fenced(investment_payload)),
		"market": FakeCompletion(fenced(investment_payload)),
		"scoring": FakeCompletion(fenced(scoring_payload)),
	}
