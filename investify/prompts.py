import re

CONTENT_PLACEHOLDER = "<INVESTMENT_CONTENT>"
RESULTS_PLACEHOLDER = "<AGENT_RESULTS>"

INVESTMENT_SYSTEM = "You are an expert investment analyst helping evaluate potential investments."
FOUNDER_SYSTEM = (
	"You are an expert at analyzing founding teams and leadership for investment opportunities. "
	"Research team members to verify their backgrounds and provide comprehensive team assessments."
)
MARKET_SYSTEM = (
	"You are an expert market analyst. Research markets and competitors to verify claims "
	"and provide comprehensive market assessments."
)
SCORING_SYSTEM = (
	"You are an expert investment evaluator. Your task is to analyze investment opportunities "
	"based on multiple analyses and provide comprehensive scoring assessments."
)

INVESTMENT_PROMPT = """
Evaluate the investment opportunity below. Cover market context, risk and return potential.

Investment Content:
<INVESTMENT_CONTENT>

Cover:
- Investment overview: what it is, industry and sector, stage (early, growth, mature)
- Market: Total Addressable Market (TAM) in USD, growth rate in percent, drivers and headwinds, competition
- Risks: key risk factors with likelihood and impact, mitigations, regulation, timing
- Return potential: ROI estimate, growth drivers, exit options, time horizon

Use specific numbers wherever possible and state assumptions for estimates. Use the web_search tool when recent data would help.

Return JSON in a ```json fenced block with this structure:
{
  "analysis": "Detailed markdown analysis with sections and bullet points",
  "metrics": {
    "confidence_score": 0.7,
    "key_metrics": {
      "market_size": {"tam_usd": 5000000000, "growth_rate_percent": 12.5},
      "risk_assessment": {"overall_risk": "medium", "key_risks": ["risk1", "risk2"]},
      "return_potential": {"estimated_roi_percent": 18.5, "time_horizon_years": 5}
    }
  }
}
confidence_score is between 0 and 1; overall_risk is one of high, medium, low.
"""

FOUNDER_PROMPT = """
Assess the founding team behind the investment opportunity below: capabilities, experience and fit for the venture.

Investment Content:
<INVESTMENT_CONTENT>

Cover:
- Team composition: key members, roles, backgrounds, size and structure
- Leadership: founders' track record, domain expertise, previous ventures
- Technical capability and critical skill gaps
- Business experience: commercial, sales and marketing, financial management
- Team dynamics: time working together, complementary skills, organizational risks

Use the perplexity tool to verify backgrounds. Give specific examples and note where advisors or hires would help.

Return JSON in a ```json fenced block with this structure:
{
  "analysis": "Detailed markdown analysis with sections and bullet points",
  "metrics": {
    "confidence_score": 0.7,
    "key_metrics": {
      "team_size": 5,
      "technical_expertise_level": "high",
      "business_expertise_level": "medium",
      "industry_experience_years": 8,
      "previous_ventures": 2,
      "team_completeness": 75,
      "risk_level": "medium"
    }
  }
}
confidence_score is between 0 and 1, team_completeness between 0 and 100; levels are high, medium or low.
"""

MARKET_PROMPT = """
Analyze the market opportunity, competitive landscape and growth potential for the investment opportunity below.

Investment Content:
<INVESTMENT_CONTENT>

Cover:
- Market size: TAM and SAM in USD, growth rate in percent, trends with examples
- Competition: named competitors, positioning, advantages and disadvantages, entry barriers, concentration
- Growth: drivers, expansion opportunities, risks and mitigations, timing

Use the perplexity tool to research the market. Use specific numbers, state assumptions and sources.

Return JSON in a ```json fenced block with this structure:
{
  "analysis": "Detailed markdown analysis with sections and bullet points",
  "metrics": {
    "confidence_score": 0.7,
    "key_metrics": {
      "market_size": {"tam_usd": 5000000000, "sam_usd": 1000000000, "growth_rate_percent": 12.5},
      "competition_metrics": {"competitor_count": 5, "market_concentration": "medium", "barrier_to_entry": "high"},
      "market_dynamics": {"market_stage": "growth", "risk_level": "medium"}
    }
  }
}
market_stage is one of emerging, growth, mature, declining; other levels are high, medium or low.
"""

SCORING_PROMPT = """
Score the investment opportunity below using the previous agent analyses.

Investment Content:
<INVESTMENT_CONTENT>

Previous Agent Analyses:
<AGENT_RESULTS>

Base the evaluation primarily on the analyses provided and infer from the investment content where they are silent.
Evaluate four categories: team, market, technical and innovation. For each give a score (0-100), a confidence (0-1),
specific strengths and weaknesses, and a one-paragraph assessment.

Return JSON in a ```json fenced block with this structure:
{
  "scores": {
    "overall": 72,
    "team": {"score": 80, "confidence": 0.8, "strengths": ["..."], "weaknesses": ["..."], "assessment": "..."},
    "market": {"score": 75, "confidence": 0.9, "strengths": ["..."], "weaknesses": ["..."], "assessment": "..."},
    "technical": {"score": 85, "confidence": 0.7, "strengths": ["..."], "weaknesses": ["..."], "assessment": "..."},
    "innovation": {"score": 65, "confidence": 0.6, "strengths": ["..."], "weaknesses": ["..."], "assessment": "..."}
  },
  "recommendation": "consider",
  "confidence_level": 0.75,
  "key_insights": ["..."],
  "risk_factors": ["..."]
}
recommendation is one of "strong_consider", "consider", "needs_review", "pass".

If you cannot produce JSON, write these sections instead:
Executive Summary: (Overall score, Recommendation, Confidence level, Key highlights, Key concerns)
Team Analysis:, Market Analysis:, Technical Analysis:, Innovation Assessment: (Score, Confidence level, Strengths, Weaknesses, Assessment)
"""

def fill(template: str, content: str, agent_results: str = "") -> str:
	# Single pass, so placeholder text inside the substituted values is left alone
	values = {CONTENT_PLACEHOLDER: content, RESULTS_PLACEHOLDER: agent_results}
	pattern = "|".join(re.escape(p) for p in values)
	return re.sub(pattern, lambda m: values[m.group(0)], template)
