"""
Prompt construction for live interview answers.

The system prompt is assembled from fixed behavioural instructions, optional
role/company framing, an optional job-description excerpt, an optional
profile summary and, when the session has history, an "earlier in this
interview" block.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from nexus.config import settings
from nexus.realtime.memory import QAPair

JOB_DESCRIPTION_CHARS = 800
MAX_PROFILE_SKILLS = 12
MAX_PROFILE_EXPERIENCE = 2
EXPERIENCE_CHARS = 100


LIVE_ANSWER_PROMPT = """You are the candidate in a job interview. Answer exactly like a real, confident person would out loud.

SOUND HUMAN:
- Use natural openers like "Yeah, so...", "Honestly...", "What we ended up doing was..."
- Conversational but professional, with genuine enthusiasm where it fits
- Say "I" and "we" naturally

ANSWER SHAPE:
- Open with a direct, confident sentence
- Give ONE concrete example with real details
- Mention numbers or metrics when they matter
- 3-4 sentences, then stop on a strong note

NEVER:
- Bullet points, lists or headings
- Stiff phrasing like "In my capacity as..."
- Hedging with "I think" or "maybe"
- Long paragraphs"""


EXAMPLE_ANSWER = """
EXAMPLE OF A GOOD ANSWER:
"Yeah, so last year I led our move from hand-rolled deploy scripts to a proper CI/CD pipeline. We had around forty services and a release took most of an afternoon. I set up GitHub Actions with staged rollouts, and we got a full release down to about fifteen minutes. The team honestly stopped dreading release days after that."
"""


@dataclass
class InterviewContext:
    """Optional framing for the interview being answered."""
    role: str = ""
    company: str = ""
    job_description: str = ""
    model: str = ""


def _role_block(context: InterviewContext) -> str:
    if not context.role:
        return ""
    block = f"\n\nROLE YOU'RE INTERVIEWING FOR: {context.role}"
    if context.company:
        block += f" at {context.company}"
    block += "\nTailor every answer to show you are a strong fit for THIS role."
    return block


def _job_description_block(context: InterviewContext) -> str:
    if not context.job_description:
        return ""
    excerpt = context.job_description[:JOB_DESCRIPTION_CHARS]
    return (
        f"\n\nJOB REQUIREMENTS TO ADDRESS:\n{excerpt}"
        "\n\nWhere it fits, connect your experience to these requirements."
    )


def _experience_lines(experience: Sequence[Any]) -> List[str]:
    lines = []
    for entry in list(experience)[:MAX_PROFILE_EXPERIENCE]:
        if isinstance(entry, dict):
            title = entry.get("title") or ""
            company = entry.get("company") or ""
            lines.append(f"- {title} at {company}")
        elif isinstance(entry, str):
            lines.append(f"- {entry[:EXPERIENCE_CHARS]}")
    return lines


def _profile_block(profile: Dict[str, Any]) -> str:
    name = profile.get("name")
    skills = profile.get("skills") or []
    experience = profile.get("experience") or []

    block = "\n\nYOUR BACKGROUND:"
    if isinstance(name, str) and name:
        block += f"\nName: {name}"

    if isinstance(skills, list):
        skill_names = [s for s in skills[:MAX_PROFILE_SKILLS] if isinstance(s, str)]
        if skill_names:
            block += f"\nKey Skills: {', '.join(skill_names)}"

    if isinstance(experience, list) and experience:
        lines = _experience_lines(experience)
        if lines:
            block += "\nRecent Experience:\n" + "\n".join(lines)

    block += "\n\nDraw on YOUR real background and speak as yourself."
    return block


def build_system_prompt(
    context: Optional[InterviewContext] = None,
    profile: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Build the system prompt for a live answer, without session history.

    Args:
        context: Role, company and job description framing
        profile: Candidate profile (name, skills, experience)
    """
    prompt = LIVE_ANSWER_PROMPT
    if context is not None:
        prompt += _role_block(context)
        prompt += _job_description_block(context)
    if profile:
        prompt += _profile_block(profile)
    prompt += "\n" + EXAMPLE_ANSWER
    return prompt


def build_history_block(
    pairs: Sequence[QAPair],
    question_chars: Optional[int] = None,
    answer_chars: Optional[int] = None,
) -> str:
    """
    Render earlier exchanges so the model stays consistent with them.

    Uses its own truncation limits, shorter than the stored ones.
    """
    if not pairs:
        return ""
    question_chars = question_chars or settings.memory.context_question_chars
    answer_chars = answer_chars or settings.memory.context_answer_chars

    block = "\n\nEARLIER IN THIS INTERVIEW:\n"
    for pair in pairs:
        block += (
            f"Q: {pair.question[:question_chars]}\n"
            f"Your answer: {pair.answer[:answer_chars]}...\n"
        )
    block += "\nStay consistent with what you've already said."
    return block


def build_user_turn(question: str) -> str:
    """Wrap the interviewer's question for the user turn."""
    return (
        f'Interviewer asks: "{question}"\n\n'
        "Respond naturally, like you're really in the interview. Be yourself!"
    )
