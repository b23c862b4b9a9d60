"""Prompt templates and response schemas for the generative model."""
from datetime import datetime
from typing import Iterable, Optional

from ..models.biomarker import Biomarker
from ..models.blood_test import BiomarkerReading
from ..models.profile import User

ANALYZE_BLOOD_TEST_COMMAND = "[ANALYZE_BLOOD_TEST]"

SAFETY_NOTICE = (
    "IMPORTANT: You are not a medical professional. Do NOT provide any medical diagnosis, "
    "treatment plans, or prescriptions."
)

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {
            "type": "STRING",
            "description": "A concise, easy-to-understand summary of the key findings from the blood test results.",
        },
        "biomarkers": {
            "type": "ARRAY",
            "description": "An array of significant biomarkers found in the results.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING", "description": "The name of the biomarker (e.g., 'Cholesterol', 'Glucose')."},
                    "value": {"type": "STRING", "description": "The measured value of the biomarker as a string."},
                    "unit": {"type": "STRING", "description": "The unit for the measured value (e.g., 'mg/dL', '%')."},
                    "range": {"type": "STRING", "description": "The normal reference range for this biomarker."},
                    "explanation": {"type": "STRING", "description": "A simple explanation of what this biomarker indicates about health."},
                    "status": {"type": "STRING", "description": "Status of the biomarker: 'normal', 'borderline', 'high', or 'low'."},
                },
                "required": ["name", "value", "unit", "range", "explanation", "status"],
            },
        },
        "recommendations": {
            "type": "ARRAY",
            "description": "A list of 3-5 general, non-prescriptive wellness and lifestyle recommendations based on the results.",
            "items": {"type": "STRING"},
        },
    },
    "required": ["summary", "biomarkers", "recommendations"],
}

RECOMMENDATIONS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "nutrition": {
            "type": "ARRAY",
            "description": "A list of 2-4 actionable nutrition and dietary recommendations.",
            "items": {"type": "STRING"},
        },
        "lifestyle": {
            "type": "ARRAY",
            "description": "A list of 2-3 lifestyle recommendations, including exercise and other habits.",
            "items": {"type": "STRING"},
        },
        "supplements": {
            "type": "ARRAY",
            "description": "A list of 1-2 potential supplements. MUST include a disclaimer to consult a doctor before taking any.",
            "items": {"type": "STRING"},
        },
        "next_checkup": {
            "type": "STRING",
            "description": "When to get the next check-up for this biomarker (e.g., 'In 3-6 months').",
        },
    },
    "required": ["nutrition", "lifestyle", "supplements", "next_checkup"],
}

FALLBACK_RECOMMENDATIONS = {
    "nutrition": ["Could not generate AI recommendations at this time."],
    "lifestyle": ["Please consult with a healthcare provider for advice."],
    "supplements": [],
    "next_checkup": "N/A",
}

FALLBACK_DAILY_TIP = "Remember to stay hydrated and listen to your body today. You've got this!"

FALLBACK_CHAT_REPLY = (
    "Sorry, I'm having trouble responding right now. Please try again in a moment."
)


def build_analysis_prompt(custom_biomarkers: Optional[str] = None) -> str:
    focus = ""
    if custom_biomarkers:
        focus = (
            f"The user is particularly interested in the following biomarkers: {custom_biomarkers}. "
            "Please prioritize these in your analysis if they are present in the report."
        )
    return f"""You are a helpful AI health analyst for the EVERLIV HEALTH app. Your task is to analyze an image of a blood test report.

{SAFETY_NOTICE} Your analysis should be informative and focused on general wellness.

Analyze the provided blood test report image and structure your findings into a JSON format. Identify key biomarkers, their values, units, normal ranges, and provide a simple explanation and status (normal, borderline, high, or low).

{focus}

Here is the blood test report:""".strip()


def build_recommendations_prompt(reading: BiomarkerReading) -> str:
    return f"""You are an AI health and wellness coach for the EVERLIV HEALTH app.
A user has a biomarker result for "{reading.name}" which is {reading.value} {reading.unit}. The status is considered "{reading.status}".

{SAFETY_NOTICE} Your advice must be general, safe, and focus on lifestyle, diet, and exercise. Always suggest consulting a healthcare professional for personalized advice. For supplements, explicitly state that a doctor should be consulted.

Based on this, provide a structured set of actionable recommendations in JSON format. The response should be concise and easy to read."""


def _format_date(iso_date: str) -> str:
    try:
        return datetime.fromisoformat(iso_date.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return iso_date


def build_user_context(user: User, biomarkers: Iterable[Biomarker]) -> str:
    """Plain-text profile block injected into the assistant's instructions."""
    lines = ["--- Start of User Health Profile ---", f"User Name: {user.name}"]

    profile = user.health_profile
    if profile:
        if profile.age:
            lines.append(f"Age: {profile.age}")
        if profile.sex:
            lines.append(f"Sex: {profile.sex}")
        if profile.height:
            lines.append(f"Height: {profile.height:g} cm")
        if profile.weight:
            lines.append(f"Weight: {profile.weight:g} kg")
        if profile.activity_level:
            lines.append(f"Activity Level: {profile.activity_level}")
        if profile.health_goals:
            lines.append(f"Health Goals: {', '.join(profile.health_goals)}")
        if profile.dietary_preferences:
            lines.append(f"Dietary Preferences: {profile.dietary_preferences}")
        if profile.chronic_conditions:
            lines.append(f"Known Conditions: {profile.chronic_conditions}")
        if profile.allergies:
            lines.append(f"Allergies: {profile.allergies}")
        if profile.supplements:
            lines.append(f"Current Supplements: {profile.supplements}")

    biomarkers = list(biomarkers)
    if biomarkers:
        lines.append("")
        lines.append("Recent Biomarker Data:")
        for b in biomarkers:
            lines.append(
                f"- {b.name}: {b.value} {b.unit} (Status: {b.status}, Last Updated: {_format_date(b.last_updated)})"
            )
    else:
        lines.append("")
        lines.append("No biomarker data available for this user yet.")
    lines.append("--- End of User Health Profile ---")
    return "\n".join(lines) + "\n"


def build_chat_system_instruction(user: User, biomarkers: Iterable[Biomarker]) -> str:
    context = build_user_context(user, biomarkers)
    return f"""You are EVERLIV HEALTH's AI Assistant, an expert in providing supportive and safe health and wellness information. Your primary goal is user safety.

**CORE SAFETY DIRECTIVE: HANDLING MEDICAL IMAGES**
This is your most important instruction. It overrides everything else.

**Exception for Blood Tests:**
- If a user uploads an image and their message indicates it is a blood test report (e.g., asks to "analyze my blood test", "read these results", "what does this report say?"), you MUST respond with the exact string `{ANALYZE_BLOOD_TEST_COMMAND}` and nothing else. This is a special command for the application to trigger its blood test analysis tool.

**For all other medical-related images (e.g., skin rashes, moles, injuries):**
You MUST follow this three-step process exactly:
1.  **Acknowledge and Refuse Diagnosis:** Immediately state that you are an AI and are not capable of providing a medical diagnosis.
2.  **Advise Professional Consultation:** Strongly and clearly recommend that the user consult a qualified healthcare professional.
3.  **Do Not Speculate:** You must NOT describe the image in medical terms, guess at what it might be, or offer any potential causes or treatments.

**General Conduct:**
- For all other questions, be empathetic, clear, and encouraging.
- Never provide a medical diagnosis or prescribe medication, even for text-based questions. Always defer to healthcare professionals for personal health concerns.
- Use markdown for formatting lists or key points to improve readability.
- Utilize the user's health profile (provided below) to make your general wellness advice more relevant and personalized, but do not simply list their data back to them.

{context}"""


def build_daily_tip_prompt(user: User, biomarkers: Iterable[Biomarker]) -> str:
    out_of_range = "\n".join(
        f"- {b.name}: {b.value} {b.unit} (Status: {b.status})"
        for b in biomarkers
        if b.status != "normal"
    )
    profile = user.health_profile
    goals = ", ".join(profile.health_goals) if profile else ""
    profile_context = ""
    if profile:
        profile_context = (
            f"The user is a {profile.age}-year-old {profile.sex or 'person'}.\n"
            f"Their activity level is {profile.activity_level or 'unknown'}.\n"
            f"They have the following known conditions: {profile.chronic_conditions or 'None reported'}.\n"
            f"They have the following allergies: {profile.allergies or 'None reported'}.\n"
            f"They are currently taking the following supplements: {profile.supplements or 'None reported'}.\n"
        )
    return f"""You are an AI health and wellness coach for the EVERLIV HEALTH app.
A user has the following goals: {goals}.
{profile_context}
Their current biomarkers that are not in the normal range are:
{out_of_range or 'All biomarkers are currently in the normal range.'}

Based on this information, provide a single, short, actionable, and encouraging health tip for their day.
The tip should be concise, easy to understand, and no more than two sentences. Do not greet the user or add any conversational fluff. Just provide the tip.
Example: "To support your heart health goal, try incorporating a 15-minute brisk walk into your lunch break today for a great cardio boost!\""""


def build_speech_prompt(text: str) -> str:
    return f"Read the following guided meditation slowly, in a calm and soothing voice:\n\n{text}"
