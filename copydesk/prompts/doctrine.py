"""Platform doctrine — channel-specific rules applied before the writing rules.

Each platform is a ``Doctrine`` variant. ``get_doctrine`` only looks the
variant up; it never branches on platform itself.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Protocol

from copydesk.models.generation import Format, Platform


class Doctrine(Protocol):
    platform: Platform | None

    def rules(self, format: Format) -> str:
        """Full doctrine text for one output format."""
        ...


# --- LinkedIn ---

LINKEDIN_DOCTRINE = """\
# LinkedIn Platform Doctrine

## Purpose
Canonical doctrine for how LinkedIn distributes content.
This must be applied BEFORE the writing rules.

---

## LinkedIn Algorithm Philosophy

LinkedIn optimizes for:
1. **Attention** – Does the content stop the scroll?
2. **Dwell time** – Do people stay and read?
3. **Meaningful interaction** – Quality comments over reactions
4. **Sustained conversation** – Threads that continue

It ranks behavior, not format.

---

## What LinkedIn Rewards

- Strong first 2 lines
- Mobile readability
- Native content (no external links)
- Saves and shares
- Experience-based comments
- Creator replies to comments

---

## What LinkedIn Suppresses

- External-link-first posts
- Engagement bait ("Like if you agree!")
- Over-posting (more than 1-2x/day)
- Hashtag stuffing (3+ hashtags)
- Long, low-retention video
- Generic advice everyone's heard

---

## Global LinkedIn Content Formula

1. **HOOK** – Earn the pause in first 2 lines
2. **CONTEXT** – Why this matters now
3. **PROOF** – Data, story, or evidence
4. **FRAMEWORK** – Actionable structure
5. **PROMPT** – Drive engagement (question, CTA)

No step may be skipped.

---

## Quality Gate

Before publishing, ask:
- Would a serious professional save this?
- Does this earn attention in 2 seconds?
- Does it invite experience-based replies?

If any answer is no, rewrite.\
"""

LINKEDIN_FORMAT_RULES: dict[Format, str] = {
    Format.POST: """\
## FORMAT: LinkedIn Text Post

Requirements:
- Short lines (mobile-first)
- White space between ideas
- One core idea only
- NO external links in main post
- Hook in first 2 lines (before "see more")
- 150-300 words optimal
- End with engagement prompt\
""",
    Format.ARTICLE: """\
## FORMAT: LinkedIn Article

Requirements:
- Authority established in first 150 words
- Compelling title (60-80 characters)
- Subheaders every 3-5 paragraphs
- 800-1500 words
- Built for repurposing into posts
- Include data/evidence throughout
- Clear sections with ## headers\
""",
    Format.CAROUSEL: """\
## FORMAT: LinkedIn Carousel

Requirements:
- One idea per slide
- Large typography (readable on mobile)
- 8-12 slides optimal
- Slide 1: Hook/Title (pattern interrupt)
- Slides 2-10: Build argument with visuals
- Final slide: Save-worthy summary + CTA
- Include visual direction for each slide

Output format:
SLIDE 1:
[Visual direction]
"Text content"

SLIDE 2:
...\
""",
    Format.VIDEO_SCRIPT: """\
## FORMAT: LinkedIn Video Script

Requirements:
- Hook in first 3 seconds
- Captions required (most watch muted)
- Comment-driven CTA at end
- 60-90 seconds optimal
- Conversational, direct-to-camera style
- One clear takeaway

Output format:
[0:00-0:03] HOOK
Visual: ...
Script: "..."

[0:03-0:15] CONTEXT
...\
""",
    Format.IC_MEMO: """\
## FORMAT: LinkedIn IC Memo Style

Requirements:
- Executive summary (3-5 bullets)
- Formal but readable structure
- Data exhibits referenced
- Clear recommendation
- Professional, institutional tone
- Works as both post and article\
""",
}

LINKEDIN_RESOURCES = """\
# LinkedIn Resources - Platform Intelligence

## Purpose
Contextual intelligence for LinkedIn optimization.
Apply after LinkedIn doctrine, before the writing rules.

---

## Algorithm Intelligence Sources

- Richard van der Blom reports (annual LinkedIn studies)
- LinkedIn product disclosures (official blog)
- Shield Analytics benchmarks

---

## Observed High-Performer Patterns

- Clear, consistent POV
- Data-backed claims
- Storytelling with specifics
- Regular engagement with comments
- Native-first publishing (no link posts)

---

## High-Performance Content Types

1. **Deal breakdowns** – Real numbers, real lessons
2. **Market POVs** – Timely takes on current events
3. **Failure post-mortems** – What went wrong, what was learned
4. **Frameworks** – Repeatable processes others can use
5. **Checklists** – Save-worthy reference content

---

## Underperforming Content (Avoid)

- Generic motivation ("Believe in yourself!")
- Corporate announcements
- External-link-first posts
- Engagement bait
- Recycled content without fresh angle

---

## Living Adjustments

Tactics may change with algorithm updates.
Core principles (value, clarity, authenticity) do not.\
"""


class LinkedInDoctrine:
    platform = Platform.LINKEDIN

    def rules(self, format: Format) -> str:
        return "\n\n".join(
            [LINKEDIN_DOCTRINE, LINKEDIN_FORMAT_RULES[format], LINKEDIN_RESOURCES]
        )


# --- Shorter doctrines ---

# Structural notes for platforms without a dedicated per-format rulebook.
GENERIC_FORMAT_RULES: dict[Format, str] = {
    Format.POST: "## FORMAT: Short Post\n\n- One core idea\n- Hook in the first line\n- 150-300 words",
    Format.ARTICLE: "## FORMAT: Article\n\n- Clear title\n- Subheaders every 3-5 paragraphs\n- 800-1500 words",
    Format.CAROUSEL: "## FORMAT: Carousel\n\n- One idea per slide\n- 8-12 slides\n- Visual direction per slide",
    Format.VIDEO_SCRIPT: "## FORMAT: Video Script\n\n- Hook in the first 3 seconds\n- Timestamped sections\n- One takeaway",
    Format.IC_MEMO: "## FORMAT: IC Memo\n\n- Executive summary bullets\n- Data exhibits\n- Clear recommendation",
}


class YouTubeDoctrine:
    platform = Platform.YOUTUBE

    TEXT = """\
# YouTube Platform Doctrine

## Algorithm Philosophy
YouTube optimizes for watch time, engagement, and session duration.

## What YouTube Rewards
- Strong thumbnails and titles
- High retention in first 30 seconds
- Comments and engagement
- Watch time over views

## What YouTube Suppresses
- Clickbait without payoff
- Low retention content
- Misleading thumbnails

## Content Formula
1. HOOK (first 5 seconds)
2. PROMISE (what they'll learn)
3. CONTENT (deliver value)
4. CTA (subscribe, comment)\
"""

    def rules(self, format: Format) -> str:
        return f"{self.TEXT}\n\n{GENERIC_FORMAT_RULES[format]}"


class InstagramDoctrine:
    platform = Platform.INSTAGRAM

    TEXT = """\
# Instagram Platform Doctrine

## Algorithm Philosophy
Instagram optimizes for saves, shares, and time spent.

## What Instagram Rewards
- Carousel posts (high engagement)
- Reels with high completion rates
- Save-worthy content
- Stories for daily touchpoints

## What Instagram Suppresses
- Low-quality images
- Engagement bait
- Overuse of hashtags

## Content Formula
1. VISUAL HOOK
2. VALUE (teach or entertain)
3. ENGAGEMENT (question or CTA)\
"""

    def rules(self, format: Format) -> str:
        return f"{self.TEXT}\n\n{GENERIC_FORMAT_RULES[format]}"


class TwitterDoctrine:
    platform = Platform.TWITTER

    TEXT = """\
# Twitter/X Platform Doctrine

## Algorithm Philosophy
X optimizes for replies, retweets, and conversation.

## What Twitter Rewards
- Strong first line
- Thread format for depth
- Contrarian takes backed by evidence
- Quote posts with commentary

## What Twitter Suppresses
- External links (lower reach)
- Thread engagement bait
- Low-effort posts

## Content Formula
1. HOOK (first tweet)
2. CONTEXT (2-3 tweets)
3. PROOF (data or story)
4. TAKEAWAY (final tweet)\
"""

    def rules(self, format: Format) -> str:
        return f"{self.TEXT}\n\n{GENERIC_FORMAT_RULES[format]}"


class GenericDoctrine:
    platform = None

    TEXT = """\
# Generic Platform Doctrine

## Universal Principles
- Lead with value
- Be specific, not generic
- One idea per piece
- Clear call to action

## Content Formula
1. ATTENTION
2. VALUE
3. ACTION

Apply the universal content formula.\
"""

    def rules(self, format: Format) -> str:
        return f"{self.TEXT}\n\n{GENERIC_FORMAT_RULES[format]}"


DOCTRINES: dict[Platform, Doctrine] = {
    d.platform: d
    for d in (LinkedInDoctrine(), YouTubeDoctrine(), InstagramDoctrine(), TwitterDoctrine())
}
GENERIC = GenericDoctrine()


def _coerce(platform: Platform | str) -> Platform | None:
    if isinstance(platform, Platform):
        return platform
    try:
        return Platform(platform)
    except ValueError:
        return None


@lru_cache(maxsize=None)
def get_doctrine(platform: Platform | str, format: Format | str) -> str:
    """Doctrine text for a platform/format pair.

    Unknown platforms get Generic; unknown formats get the post rules.
    """
    if not isinstance(format, Format):
        try:
            format = Format(format)
        except ValueError:
            format = Format.POST
    doctrine = DOCTRINES.get(_coerce(platform), GENERIC)
    return doctrine.rules(format).strip()
