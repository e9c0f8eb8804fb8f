"""
User-facing message templates for pivots and session start.
"""

from __future__ import annotations

WELCOME_MESSAGE = (
    "Let's figure out what you're building. I'll ask one question at a time "
    "and adapt as we go. If you'd rather skip ahead, just say so and I'll "
    "fill the gaps with clearly marked assumptions you can correct."
)

FIRST_QUESTION = "In a sentence or two, what problem are you trying to solve, and for whom?"

# =============================================================================
# PIVOT TRANSITIONS: chosen from the escape signals that fired
# =============================================================================

TRANSITION_EXPERTISE = (
    "I can see you have {skip_level} expertise in this area. Let me generate some "
    "smart assumptions based on what you've shared so far, and we can move forward "
    "more efficiently."
)

TRANSITION_IMPATIENCE = (
    "I understand you'd like to move faster. Let me create some intelligent "
    "assumptions based on our conversation so far, and you can let me know if "
    "anything needs adjustment."
)

TRANSITION_REDIRECT = (
    "I hear you'd like to see {destination}. Let me generate some assumptions based "
    "on what we've discussed, and then we can move toward that goal."
)

TRANSITION_FATIGUE = (
    "I can sense this conversation is getting lengthy. Let me summarize what I've "
    "learned and make some smart assumptions so we can progress more efficiently."
)

TRANSITION_DEFAULT = (
    "Based on our conversation, I'll generate some intelligent assumptions to help "
    "us move forward more efficiently. You can review and adjust them as needed."
)

USER_OPTIONS = {
    "proceed_with_assumptions": "Yes, proceed with these assumptions",
    "modify_assumptions": "Let me adjust some of these assumptions",
    "continue_questioning": "Actually, I'd like to answer more questions",
}

# =============================================================================
# ENGAGEMENT RECOMMENDATIONS
# =============================================================================

ENGAGEMENT_ALERT_RECOMMENDATIONS = {
    "high": [
        "Consider triggering escape hatch immediately",
        "Offer to jump to assumptions or deliverables",
        "Acknowledge user frustration explicitly",
    ],
    "moderate": [
        "Reduce question complexity",
        "Ask more engaging, specific questions",
        "Consider changing topic focus",
    ],
    "mild": [
        "Monitor closely for further decline",
        "Inject more relevant examples",
    ],
    "none": [],
}

ENGAGEMENT_TREND_RECOMMENDATIONS = {
    "decreasing": [
        "Change questioning approach",
        "Ask about user preferences directly",
    ],
    "increasing": [
        "Continue current approach",
        "Consider increasing question depth",
    ],
    "stable": [],
}
