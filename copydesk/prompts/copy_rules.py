"""Platform-agnostic writing rules and the layered prompt builder.

The writing rules govern persuasion, clarity, value density and ethics.
Platform constraints come from doctrine and always sit above them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from copydesk.models.generation import Format, GenerationConfig, Mode, Tone
from copydesk.models.rating import LearningContext

SECTION_SEPARATOR = "\n\n---\n\n"

# Minimum sourced data points per output, by format length.
MIN_DATA_POINTS: dict[Format, int] = {
    Format.POST: 3,
    Format.CAROUSEL: 3,
    Format.VIDEO_SCRIPT: 3,
    Format.ARTICLE: 5,
    Format.IC_MEMO: 5,
}

WRITING_RULES = """\
# Writing Rules - Platform-Agnostic Writing Intelligence

## Core Principle
Separate WHAT is said from WHERE it is published.
These rules define WHAT. Platform doctrine defines WHERE.

---

## Universal Content Formula (All Platforms)

1. **ATTENTION** – Earn the pause
2. **ORIENTATION** – What this is and why it matters
3. **VALUE DELIVERY** – Insight, data, story, or framework
4. **DISTINCTION** – POV, contrast, memorable phrasing
5. **ACTION** – Clear next step

This formula is immutable.

---

## Value Density Rules

- Every asset must teach, clarify, or reframe something real
- Opinions require experience or proof
- Clarity beats cleverness
- One core idea per asset

---

## Approved Persuasion Techniques

- Contrast framing
- Loss aversion (with resolution)
- Identity alignment
- Pattern interruption
- Open loops
- Social proof (non-manipulative)

---

## Prohibited Practices

- Engagement bait
- Manufactured outrage
- Fear without payoff
- Algorithm gaming language

---

## Quality Gate (Required)

Before output:
- Is this useful without context?
- Would a smart professional save this?
- Is the idea unmistakably clear?

If not, rewrite.

---

## DATA REQUIREMENTS (MANDATORY)

Every output MUST include:
- At least {min_points} specific numbers/percentages from sources
- Named sources (markets, reports, studies, experts)
- Time-bound data (dates, periods, timeframes)
- NO generic statements without supporting data

CRITICAL DATA RULES:
1. If the source material contains data, YOU MUST USE IT
2. Quote specific figures: rates, percentages, dollar amounts, ratios
3. Attribute data to sources: "According to [source]..." or "Data shows..."
4. Generic advice without numbers = FAILURE
5. Vague claims like "many investors" or "significant returns" = FAILURE

If source material lacks data, acknowledge the limitation explicitly.
Do NOT invent numbers. Use real data from the SourcePack.\
"""

RESOURCES = """\
# Resources - Enrichment Layer

Informational only. Use to enrich thinking. Never let it override platform doctrine.

## Persuasion Frameworks

- **AIDA**: Attention → Interest → Desire → Action
- **PAS**: Problem → Agitate → Solve
- **Contrast & Reframe**: Challenge assumption, provide new lens
- **Loss vs Gain Framing**: Frame around what's at stake

## Behavioral Psychology

- **Loss aversion**: People fear losing more than gaining
- **Cognitive ease**: Simple ideas spread faster
- **Social proof**: Others' actions validate choices
- **Identity signaling**: Content that reflects who they want to be
- **Curiosity gaps**: Open loops that demand closure

## Story Archetypes

- Failure → Lesson
- Mistake → Correction
- Before → After
- Myth → Reality
- Observation → Insight

## Writing Standards

- Clear > Clever
- Specific > Abstract
- Experienced > Theoretical
- Useful > Impressive\
"""

MODE_PROMPTS: dict[Mode, str] = {
    Mode.WRITE: """\
## OUTPUT MODE: WRITE

Produce finished, publication-ready content.

Requirements:
- Apply platform doctrine FIRST
- Then apply the universal content formula
- Complete, polished prose
- All claims supported by evidence
- Ready to copy-paste and publish\
""",
    Mode.IDEATE: """\
## OUTPUT MODE: IDEATE

Do NOT write full content. Instead provide:

1. OPENING HOOKS (3-5 options)
   - Strong attention-grabbing first lines

2. ANGLES (3-5 options)
   - Different ways to frame the same insight

3. CORE CLAIMS (bullet list)
   - Specific, provable assertions

4. ACTION IMPLICATIONS
   - What the reader should do differently

Format as structured sections with these four headings, not prose.\
""",
    Mode.DIAGNOSE: """\
## OUTPUT MODE: DIAGNOSE

Critique the provided content for:

1. PLATFORM COMPLIANCE
   - Does it follow platform doctrine?

2. VALUE DENSITY
   - Is every sentence earning its place?

3. CLARITY CHECK
   - Is the core idea unmistakably clear?

4. PERSUASION QUALITY
   - Are approved techniques used correctly?

5. RECOMMENDATIONS
   - Specific fixes ranked by impact

Be direct. No encouragement. Just diagnosis. Do NOT rewrite the content.\
""",
}

TONE_PROMPTS: dict[Tone, str] = {
    Tone.MARKET_TIMING: """\
## TONE: Market Timing Thesis

Style:
- Data-dense
- Sober
- Credibility-forward
- Minimal rhetoric

Voice: Like a research analyst writing for sophisticated readers.\
""",
    Tone.TENSION_FIRST: """\
## TONE: Tension-First Insight

Style:
- Opens with a broken assumption
- Resolves belief conflict with data
- Creates cognitive dissonance, then resolves it

Voice: Like an experienced operator correcting a misconception.\
""",
    Tone.OPERATOR_REFRAME: """\
## TONE: Operator Reframe

Style:
- Calm
- Experienced
- Mildly impatient with bad assumptions

Voice: Like a seasoned professional sharing earned insight.\
""",
    Tone.MYTH_REALITY: """\
## TONE: Myth vs Reality

Style:
- Contrast-driven
- Comment-oriented
- Fact-anchored

Voice: Like a market commentator tired of bad takes.\
""",
}

RATING_BANDS: dict[int, str] = {
    1: "Major issues. SUBSTANTIAL rewrite: different structure, different opening pattern, "
       "different angle. Treat this as a near-total replacement.",
    2: "Major issues. SUBSTANTIAL rewrite: different structure, different opening pattern, "
       "different angle. Treat this as a near-total replacement.",
    3: "Decent but missing something. Make targeted improvements to the specific areas the "
       "feedback flags; the overall shape may stay.",
    4: "Good but needs polish. Surgical edits only: preserve the structure and change as "
       "little as possible.",
    5: "Already strong. Surgical edits only: preserve the structure and change as little as "
       "possible.",
}

# (keywords, directive) pairs matched against free-text feedback.
FEEDBACK_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (
        ("more data", "numbers", "facts", "stats", "data"),
        "Add at least 3 additional numeric facts drawn from the SourcePack. Never invent figures.",
    ),
    (
        ("shorter", "concise", "tighten", "too long", "brief"),
        "Cut length by 30-50% and remove fluff.",
    ),
    (
        ("hook", "attention", "opening"),
        "Rewrite the first 2-3 lines to be more provocative.",
    ),
    (
        ("stronger", "punchier", "punchy"),
        "Use more direct language and shorter sentences.",
    ),
    (
        ("specific", "concrete", "vague"),
        "Replace abstractions with named examples.",
    ),
    (
        ("different", "new angle", "fresh"),
        "Completely restructure the approach.",
    ),
]

REFINEMENT_RULES = """\
## REFINEMENT TASK - CRITICAL INSTRUCTIONS

FIRST: Analyze the user's feedback to understand their INTENT (internally, not in output):
1. PAIN POINT: What is wrong with the current version?
2. DESIRED CHANGE: What specific change does the user want?
3. SUCCESS CRITERIA: How will the user know the issue is fixed?

### FEEDBACK KEYWORD MAPPING

When user says... → You must...
- "more data" / "numbers" / "facts" → Add 3+ additional numerical facts from the SourcePack (never invented)
- "shorter" / "concise" / "tighten" → Cut length by 30-50%, remove fluff
- "hook" / "attention" / "opening" → Rewrite first 2-3 lines to be more provocative
- "stronger" / "punchier" → Use more direct language, shorter sentences
- "specific" / "concrete" → Replace abstractions with named examples
- "different" / "new angle" → Completely restructure the approach
- Mentions specific content → Make that content MORE prominent

### STRUCTURAL VARIATION RULES (MANDATORY)

1. If the previous hook was a question, open with a statement (and vice versa)
2. If the previous structure was chronological, use contrast-based (and vice versa)
3. Do NOT repeat the previous opening sentence pattern
4. Do NOT reuse the previous transition phrases
5. Do NOT structure paragraphs the same way

### NON-NEGOTIABLES

1. Address the SPECIFIC feedback directly; no tangential changes
2. Every SourcePack fact already used remains available for reuse
3. Platform doctrine compliance is never relaxed, whatever the feedback says

OUTPUT: Just produce the improved content. Do not explain or acknowledge the feedback.\
"""

OUTPUT_INSTRUCTIONS = """\
## OUTPUT INSTRUCTIONS

Produce only the content. No preamble, no quality checks, no notes about the rules,
no meta-commentary. The output must be ready to copy and paste directly.

After the content you MAY append one machine-read block in exactly this form
(it is removed before display):

---
VALIDATION:
1. <assumption this content invalidates>
2. <data from the SourcePack that supports it>
3. <decision the reader should reconsider>
---\
"""

# Initialisms (U.S., e.g.) and common abbreviations do not end a sentence.
_ABBREVIATION = re.compile(
    r"\b(?:[A-Za-z]\.){2,}|\b(?:Mr|Mrs|Ms|Dr|Jr|Sr|St|Inc|Corp|Co|Ltd|vs|etc|approx)\."
)
_SENTENCE_END = re.compile(r"[.!?](?=[\s\"')\]]|$)")


def describe_opening(text: str) -> str:
    """Classify the first sentence of ``text`` as a question or a statement."""
    first_line = next((line.strip() for line in text.splitlines() if line.strip()), "")
    masked = _ABBREVIATION.sub(lambda m: m.group(0).replace(".", "_"), first_line)
    end = _SENTENCE_END.search(masked)
    return "question" if end and end.group() == "?" else "statement"


def matched_feedback_directives(feedback: str) -> list[str]:
    lowered = feedback.lower()
    return [
        directive
        for keywords, directive in FEEDBACK_KEYWORDS
        if any(k in lowered for k in keywords)
    ]


@dataclass(frozen=True)
class Refinement:
    previous_output: str
    rating: int
    feedback: str


def build_learning_section(context: LearningContext | None) -> str | None:
    """Render past ratings; ``None`` when there is nothing to learn from."""
    if context is None or context.is_empty:
        return None

    parts = [
        "## LEARNING FROM PAST OUTPUTS\n\n"
        "These come from previous user ratings for this platform and format."
    ]
    if context.successful_examples:
        examples = []
        for i, ex in enumerate(context.successful_examples[:3], 1):
            snippet = ex.output[:400] + ("..." if len(ex.output) > 400 else "")
            examples.append(f"**Example {i}:**\n```\n{snippet}\n```")
        parts.append(
            "### SUCCESSFUL PATTERNS (highly rated outputs)\n\n"
            "Emulate their style and structure:\n\n" + "\n\n".join(examples)
        )
    if context.patterns_to_avoid:
        avoid = []
        for i, ex in enumerate(context.patterns_to_avoid[:3], 1):
            avoid.append(
                f"**Avoid {i}:** {ex.feedback}\n"
                f'Issue: first 100 chars of the problematic output: "{ex.output[:100]}..."'
            )
        parts.append(
            "### PATTERNS TO AVOID (poorly rated outputs)\n\n" + "\n\n".join(avoid)
        )
    return "\n\n".join(parts)


def build_refinement_section(refinement: Refinement) -> str:
    opening = describe_opening(refinement.previous_output)
    opposite = "a declarative statement" if opening == "question" else "a question or a sharp contrast"
    lines = [
        REFINEMENT_RULES,
        "## USER FEEDBACK",
        f"Rating: {refinement.rating}/5 stars",
        f'Feedback: "{refinement.feedback}"',
        f"Rating guidance: {RATING_BANDS[refinement.rating]}",
        f"The previous version opened with a {opening}. Open this version with {opposite}.",
    ]
    directives = matched_feedback_directives(refinement.feedback)
    if directives:
        lines.append("Directives from this feedback:\n" + "\n".join(f"- {d}" for d in directives))
    lines.append(
        "Previous output to refine:\n" + (refinement.previous_output or "[No previous output provided]")
    )
    return "\n\n".join(lines)


def build_prompt(
    config: GenerationConfig,
    doctrine: str,
    source_pack_text: str,
    existing_content: str | None = None,
    refinement: Refinement | None = None,
    learning: LearningContext | None = None,
) -> str:
    """Assemble the layered prompt; the layer order is fixed."""
    parts = [
        f"# PLATFORM DOCTRINE (Apply First)\n\n{doctrine}",
        WRITING_RULES.format(min_points=MIN_DATA_POINTS[config.format]),
        RESOURCES,
    ]

    learning_section = build_learning_section(learning)
    if learning_section:
        parts.append(learning_section)

    parts.append(MODE_PROMPTS[config.mode])
    parts.append(TONE_PROMPTS[config.tone])
    parts.append(f"## SOURCEPACK (Your Evidence Base)\n\n{source_pack_text}")

    if config.mode is Mode.DIAGNOSE and existing_content:
        parts.append(f"## CONTENT TO DIAGNOSE\n\n{existing_content}")

    if refinement is not None:
        parts.append(build_refinement_section(refinement))

    if config.mode is Mode.WRITE:
        parts.append(OUTPUT_INSTRUCTIONS)

    return SECTION_SEPARATOR.join(parts)
