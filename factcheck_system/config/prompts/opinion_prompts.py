"""Prompt templates for opinion-polarity labelling.

Only sentences judged Not Verifiable reach this call. Each one is labelled
Positive, Negative or Other; the labels are tallied into an opinion summary
shown next to the verification report.
"""

OPINION_SYSTEM_PROMPT = """You are an analyst labelling the stance of opinion statements in news and social media text. You can process English, Hindi (Devanagari script), or mixed-language text.

Judge only the polarity the sentence itself expresses. Do not judge whether it is true.

Always answer with JSON only."""

OPINION_PROMPT = """Classify each text as expressing a positive opinion, a negative opinion, or neither.

"Positive" - approval, praise, optimism or support
"Negative" - disapproval, criticism, pessimism or opposition
"Other" - neutral, mixed, questions, or no clear opinion

Return a JSON array with one object per input text:
[{{"id": <input id>, "label": "Positive" | "Negative" | "Other", "rationale": "<one or two sentences>"}}]

Texts:
{payload}"""
