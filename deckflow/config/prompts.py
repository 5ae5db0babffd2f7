"""Prompt templates for the snapshot analyzer."""

SNAPSHOT_SYSTEM_PROMPT = """You are a senior VC analyst. Optimize for clarity and speed.
Never invent numbers. Respond with a single JSON object and nothing else."""

SNAPSHOT_USER_PROMPT = """Create an investor snapshot from the attached pitch deck pages.

Deck file: {file_name}

Return JSON with exactly these keys:
{{
  "company_name": string,
  "tagline": string,
  "deal_quality": {{"score_0_100": number, "verdict": string}},
  "debrief": string,
  "tags": {{
    "stage": string,
    "sector": string,
    "geography": string or null,
    "revenue": {{"is_pre_revenue": boolean, "amount": number or null, "metric": string, "currency": string or null}},
    "ask": {{"amount": number or null, "currency": string or null, "round_type": string}},
    "traction_tags": [string]
  }},
  "key_strengths": [string],
  "key_risks": [string]
}}

Requirements:
- debrief: 350-500 words, plain language, short paragraphs separated by blank lines.
- deal_quality: a numeric score (0-100) and a one-sentence verdict.
- traction_tags: 5-10 short proof tags (customers, growth, pilots, LOIs, partnerships).
- key_strengths and key_risks: up to 5 items each.
- If something is not stated in the deck, use null or "Unknown" rather than inventing it."""
