"""Prompt templates for the claim extraction oracle.

One template per judgment: categorize, extract implicit claims, rewrite,
disambiguate. Every request carries ``id`` fields and every response must echo
them, so results can be re-aligned to sentences even when the oracle reorders
or drops items. Templates use ``str.format`` with a single ``{payload}`` slot
holding a JSON array; literal braces are doubled.
"""

CLAIM_EXTRACTION_SYSTEM_PROMPT = """You are an expert fact-checking assistant with deep knowledge of logic, language, and verification methods. You can process text in English, Hindi (Devanagari script), or mixed languages; the principles of verifiability are language-independent.

Core principles:
1. NEVER HALLUCINATE - if you need context that isn't available, say so instead of guessing
2. PRESERVE ACCURACY - names, dates, numbers and actions must be retained exactly
3. BE CONSERVATIVE - when in doubt, prefer "Not Verifiable" over a false claim
4. FACTUAL ONLY - remove opinions and subjectivity but keep every fact

Always answer with JSON only."""

CATEGORIZE_PROMPT = """Classify each sentence into exactly one category.

"Verifiable" - specific, objective, falsifiable claims:
- Proper nouns with specific facts: "Apple released the iPhone in 2007"
- Measurable quantities, specific dates, documented events, quantifiable data
- Scientific, historical, legal or geographic facts

"Partially Verifiable" - a verifiable core mixed with subjective elements:
- Subjective modifiers: "The amazing discovery was made in 2020"
- Hedging or vague attribution: "Some say the company was founded in 1995"
- Emotional descriptions with facts: "The shocking announcement came on Monday"

"Not Verifiable" - subjective, opinion-based or too vague:
- Opinions, value or aesthetic judgments, subjective experiences
- Predictions, hypotheticals, future intentions
- Vague generalizations, questions, commands

Return a JSON array with one object per input sentence:
[{{"id": <input id>, "category": "Verifiable" | "Partially Verifiable" | "Not Verifiable", "reasoning": "<short explanation>"}}]

Sentences:
{payload}"""

IMPLICIT_CLAIMS_PROMPT = """Some sentences hide fact-shaped claims inside rhetorical questions, sarcasm or opinion.
For each sentence, list the independently verifiable factual statements it presupposes or asserts.

Rules:
- Each claim must stand alone and be checkable without the original sentence
- Use only information present in the sentence; never add facts
- Return an empty list when the sentence contains no such claim

Example:
Input: "Why did the government spend $2 billion on a stadium nobody uses?"
Output: {{"id": 0, "claims": ["The government spent $2 billion on a stadium"], "reasoning": "The question presupposes the spending"}}

Return a JSON array:
[{{"id": <input id>, "claims": ["<claim>", ...], "reasoning": "<short explanation>"}}]

Sentences:
{payload}"""

REWRITE_PROMPT = """Rewrite each partially verifiable sentence so only its verifiable content remains.

REMOVE: subjective adjectives (amazing, terrible, innovative), hedging adverbs (allegedly, reportedly),
opinion markers ("I think", "Some say"), emotional language, intensifiers, vague attributions ("sources say").
KEEP: specific entities, concrete numbers, dates, times, measurable facts, actions, events, locations.

If removing the subjective elements leaves no concrete claim, return an empty string for "rewritten".

Examples:
"The incredibly successful company was founded in 2010" -> "The company was founded in 2010"
"I think the movie was released in 2020" -> "The movie was released in 2020"
"This seems like an important development" -> ""

Return a JSON array:
[{{"id": <input id>, "rewritten": "<rewritten sentence or empty string>", "reasoning": "<what was removed>"}}]

Sentences:
{payload}"""

DISAMBIGUATE_PROMPT = """Check each candidate claim for ambiguity and resolve it only when the context allows.

"referential" ambiguity: unclear pronouns (he, she, it, they), vague references ("the company"),
relative time ("yesterday", "last year").
"structural" ambiguity: grammar that allows several readings, unclear modifier attachment or scope.

Only provide "disambiguated" when:
1. The surrounding context clearly identifies what is meant
2. The rewrite introduces no new facts
3. The result is more verifiable than the input
Otherwise set "disambiguated" to null. Do not guess.

Context (all sentences of the source text, in order):
{context}

Return a JSON array:
[{{"id": <input id>, "is_ambiguous": true | false, "ambiguity_type": "referential" | "structural" | null, "disambiguated": "<sentence>" | null, "reasoning": "<short explanation>"}}]

Candidates:
{payload}"""

HINDI_LANGUAGE_NOTE = """

IMPORTANT: The input sentences contain Hindi text (Devanagari script). Apply the same rules to Hindi sentences as to English ones and answer in the language of each sentence."""
