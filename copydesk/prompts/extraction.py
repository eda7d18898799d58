"""SourcePack extraction prompt and prompt-side SourcePack rendering."""

from __future__ import annotations

from copydesk.models.source_pack import SourcePack

EXTRACTION_PROMPT = """\
# SourcePack Extraction Task

You are extracting structured evidence from raw source material to build a SourcePack.

## PURPOSE

SourcePack exists to prevent vague content.
SourcePack defines what exists. The writer defines what it means.

## EXTRACTION RULES

1. Extract FACTS ONLY. No adjectives. No conclusions.
2. Each fact must include: metric, timeframe, geography, source reference when available.
3. Quotes must be VERBATIM. No paraphrasing.
4. If data is missing, leave the section empty rather than inventing.
5. Be ruthlessly factual.

## OUTPUT FORMAT (JSON)

Extract the following sections from the provided source material:

{
  "contextHeader": {
    "topic": "Main topic/thesis identified",
    "assetClass": "Asset class (multifamily, office, industrial, etc.)",
    "markets": ["List of geographic markets mentioned"],
    "timeHorizon": "Time period discussed (e.g., '2024-2025', 'Q1 2024')",
    "intendedOutput": "Best suited output type based on content depth"
  },
  "verifiedFacts": [
    "Fact with metric + timeframe + geography + source",
    "Example: Cap rates expanded ~150-250 bps from 2021-2024 across Top-20 MSAs (Source: Research PDF)"
  ],
  "operatingFundamentals": ["Occupancy, rent trends, NOI behavior, delinquencies"],
  "capitalSignals": ["Debt costs, DSCR thresholds, refinance viability, leverage constraints"],
  "supplyPipeline": ["Starts, deliveries, financing constraints, vacancy projections"],
  "quotes": ["Exact verbatim quote from source - Speaker Name"],
  "mechanicalImplications": ["Fact X constrains Y because Z"],
  "commonMisreads": ["Prevailing belief: X | Why incomplete: Y | Contradicting data: Z"],
  "investorQuestions": ["What assumption no longer clears underwriting?"],
  "quality": "strong|adequate|weak",
  "qualityNotes": "Assessment of SourcePack completeness"
}

## QUALITY ASSESSMENT

Ask: "Could an investment committee vote with this alone?"

- STRONG: Yes, sufficient data for decision
- ADEQUATE: Enough for commentary, not for decisions
- WEAK: Opinion-level only, narrow output scope

## SOURCE MATERIAL TO EXTRACT FROM:

"""

SECTION_TITLES = [
    ("verified_facts", "2. VERIFIED FACTS"),
    ("operating_fundamentals", "3. OPERATING FUNDAMENTALS"),
    ("capital_signals", "4. CAPITAL & STRUCTURE SIGNALS"),
    ("supply_pipeline", "5. SUPPLY PIPELINE"),
    ("quotes", "6. QUOTES (VERBATIM)"),
    ("mechanical_implications", "7. MECHANICAL IMPLICATIONS"),
    ("common_misreads", "8. COMMON MISREADS"),
    ("investor_questions", "9. INVESTOR-RELEVANT QUESTIONS"),
]


def build_extraction_prompt(source_content: str) -> str:
    return EXTRACTION_PROMPT + source_content


def format_source_pack(pack: SourcePack) -> str:
    """Render a SourcePack as labeled prompt sections, skipping empty ones."""
    header = pack.context_header
    header_lines = [
        ("Topic", header.topic),
        ("Asset Class", header.asset_class),
        ("Markets", ", ".join(header.markets)),
        ("Time Horizon", header.time_horizon),
        ("Intended Output", header.intended_output),
    ]
    sections: list[str] = []
    populated = [f"- {label}: {value}" for label, value in header_lines if value]
    if populated:
        sections.append("## 1. CONTEXT HEADER\n" + "\n".join(populated))

    for attr, title in SECTION_TITLES:
        items = getattr(pack, attr)
        if not items:
            continue
        if attr == "quotes":
            body = "\n".join(f'"{q}"' for q in items)
        else:
            body = "\n".join(f"- {item}" for item in items)
        sections.append(f"## {title}\n{body}")

    sections.append(f"## SOURCEPACK QUALITY: {pack.quality.value.upper()}\n{pack.quality_notes}")
    return "\n\n".join(sections)
