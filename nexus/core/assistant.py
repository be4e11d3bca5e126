"""
Interview Assistance Module

Request/response helpers built on the generation client:
- assist: coached answer with key points for an interview question
- feedback: scored critique of the candidate's own answer
- coding_assist: approach, code and complexity for a coding problem
- translate: plain translation of a piece of text

The model is asked for JSON; whatever it returns is parsed leniently and
missing fields fall back to safe defaults.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from nexus.core.llm import AnthropicLLMProvider, LLMProvider, Message
from nexus.exceptions import InvalidRequest
from nexus.logger import get_logger
from nexus.messages import msg

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.7
DEFAULT_SCORE = 70

ASSIST_MAX_TOKENS = 2000
FEEDBACK_MAX_TOKENS = 1500
CODING_MAX_TOKENS = 2500
TRANSLATE_MAX_TOKENS = 2000

LEVEL_INSTRUCTIONS = {
    "low": "Provide brief bullet points only. Keep it minimal.",
    "medium": "Provide a structured response with key points and a sample answer.",
    "high": "Provide a comprehensive, detailed response with multiple examples and strategies.",
}


ASSIST_PROMPT = """You are an expert interview coach helping a candidate succeed in a job interview.

CANDIDATE PROFILE:
{profile}

INTERVIEW TYPE: {interview_type}

RESPONSE LANGUAGE: {language}

ASSISTANCE LEVEL: {level}
{level_instruction}

Help the candidate answer the question:
1. Identify the question type (behavioral, technical, situational)
2. Tie the answer to their actual background
3. Use the STAR method for behavioral questions
4. Stay concise and confident

Respond in JSON with these fields:
- suggested_answer: the full suggested response
- key_points: array of 3-5 key points to remember
- follow_up_tips: tips for likely follow-up questions
- confidence_score: your confidence in this answer (0.0-1.0)"""


FEEDBACK_PROMPT = """You review interview answers and give constructive feedback.

INTERVIEW TYPE: {interview_type}

Assess the candidate's answer:
1. Overall quality (0-100)
2. Tone: confidence, enthusiasm and professionalism (0-100 each)
3. Specific strengths
4. Specific improvements
5. A short paragraph of actionable feedback

Respond in JSON:
- overall_score: number from 0-100
- tone_analysis: object with confidence, enthusiasm, professionalism
- strengths: array of strings
- improvements: array of strings
- detailed_feedback: paragraph"""


CODING_PROMPT = """You are a coding assistant helping a candidate solve technical interview problems.

PROGRAMMING LANGUAGE: {language}
MODE: {mode}

Work through the problem:
1. Understand the problem thoroughly
2. Suggest an optimal approach
3. {mode_instruction}
4. Explain the time and space complexity
5. Mention edge cases to consider

Respond in JSON with these fields:
- approach: brief explanation of the approach
- code_snippet: the code solution (null in hints-only mode)
- explanation: detailed explanation of the solution
- time_complexity: Big O time complexity
- space_complexity: Big O space complexity
- hints: array of progressive hints"""

CODING_MODES = {
    False: ("Full assistance with code", "Provide clean, efficient code"),
    True: (
        "Hints only - do not provide full solution",
        "Provide helpful hints without giving away the solution",
    ),
}


TRANSLATE_PROMPT = (
    "You are a professional translator. Translate the following text to {language}. "
    "Only respond with the translation, nothing else."
)


@dataclass
class AssistanceResult:
    suggested_answer: str = ""
    key_points: List[str] = field(default_factory=list)
    follow_up_tips: str = ""
    confidence_score: float = DEFAULT_CONFIDENCE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ToneAnalysis:
    confidence: int = DEFAULT_SCORE
    enthusiasm: int = DEFAULT_SCORE
    professionalism: int = DEFAULT_SCORE


@dataclass
class FeedbackResult:
    overall_score: float = DEFAULT_SCORE
    tone_analysis: ToneAnalysis = field(default_factory=ToneAnalysis)
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    detailed_feedback: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CodingAssistanceResult:
    approach: str = ""
    code_snippet: str = ""
    explanation: str = ""
    time_complexity: str = ""
    space_complexity: str = ""
    hints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the outermost {...} span of a model reply.

    Returns None when there is no span or it is not a JSON object.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _number(value: Any, default):
    # bool is an int subclass but never a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def parse_assistance(text: str) -> AssistanceResult:
    result = AssistanceResult()
    parsed = extract_json_object(text)
    if parsed is not None:
        if isinstance(parsed.get("suggested_answer"), str):
            result.suggested_answer = parsed["suggested_answer"]
        result.key_points = _string_list(parsed.get("key_points"))
        if isinstance(parsed.get("follow_up_tips"), str):
            result.follow_up_tips = parsed["follow_up_tips"]
        result.confidence_score = float(_number(parsed.get("confidence_score"), DEFAULT_CONFIDENCE))

    if not result.suggested_answer:
        result.suggested_answer = text
    return result


def parse_feedback(text: str) -> FeedbackResult:
    result = FeedbackResult()
    parsed = extract_json_object(text)
    if parsed is not None:
        result.overall_score = _number(parsed.get("overall_score"), DEFAULT_SCORE)
        tone = parsed.get("tone_analysis")
        if isinstance(tone, dict):
            result.tone_analysis = ToneAnalysis(
                confidence=int(_number(tone.get("confidence"), DEFAULT_SCORE)),
                enthusiasm=int(_number(tone.get("enthusiasm"), DEFAULT_SCORE)),
                professionalism=int(_number(tone.get("professionalism"), DEFAULT_SCORE)),
            )
        result.strengths = _string_list(parsed.get("strengths"))
        result.improvements = _string_list(parsed.get("improvements"))
        if isinstance(parsed.get("detailed_feedback"), str):
            result.detailed_feedback = parsed["detailed_feedback"]

    if not result.detailed_feedback:
        result.detailed_feedback = text
    return result


def parse_coding_assistance(text: str) -> CodingAssistanceResult:
    result = CodingAssistanceResult()
    parsed = extract_json_object(text)
    if parsed is not None:
        for name in ("approach", "code_snippet", "explanation", "time_complexity", "space_complexity"):
            # code_snippet is null in hints-only replies
            if isinstance(parsed.get(name), str):
                setattr(result, name, parsed[name])
        result.hints = _string_list(parsed.get("hints"))

    if not result.approach:
        result.approach = text
    return result


class InterviewAssistant:
    """
    Request/response interview coaching.

    Usage:
        assistant = InterviewAssistant()
        result = assistant.assist("Tell me about yourself", profile={"name": "Ana"})
        print(result.suggested_answer)
    """

    def __init__(self, llm: Optional[LLMProvider] = None):
        self._llm = llm or AnthropicLLMProvider()

    def assist(
        self,
        question: str,
        profile: Optional[Dict[str, Any]] = None,
        interview_type: str = "mixed",
        context: str = "",
        assistance_level: str = "medium",
        language: str = "en",
    ) -> AssistanceResult:
        """
        Suggest an answer to an interview question.

        Raises:
            InvalidRequest: If the question is empty
            BackendUnavailable: If generation is not configured
        """
        question = (question or "").strip()
        if not question:
            raise InvalidRequest(msg("error.question_required"))

        system = ASSIST_PROMPT.format(
            profile=json.dumps(profile or {}, indent=2),
            interview_type=interview_type,
            language=language,
            level=assistance_level,
            level_instruction=LEVEL_INSTRUCTIONS.get(assistance_level, ""),
        )
        user = (
            f"Interview Question: {question}\n\n"
            f"Additional Context: {context}\n\n"
            "Please provide a tailored response that highlights my relevant experience and skills."
        )

        response = self._llm.chat(
            [Message(role="user", content=user)], system=system, max_tokens=ASSIST_MAX_TOKENS
        )
        logger.info(f"Assist response: {response.output_tokens} output tokens")
        return parse_assistance(response.content)

    def feedback(
        self,
        question: str,
        user_response: str,
        interview_type: str = "mixed",
    ) -> FeedbackResult:
        """Score and critique the candidate's answer."""
        question = (question or "").strip()
        user_response = (user_response or "").strip()
        if not question:
            raise InvalidRequest(msg("error.question_required"))
        if not user_response:
            raise InvalidRequest(msg("error.text_required"))

        user = (
            f"Interview Question: {question}\n\n"
            f"Candidate's Response: {user_response}\n\n"
            "Please analyze this response and provide constructive feedback."
        )
        response = self._llm.chat(
            [Message(role="user", content=user)],
            system=FEEDBACK_PROMPT.format(interview_type=interview_type),
            max_tokens=FEEDBACK_MAX_TOKENS,
        )
        return parse_feedback(response.content)

    def coding_assist(
        self,
        problem: str,
        language: str = "python",
        current_code: str = "",
        hints_only: bool = False,
    ) -> CodingAssistanceResult:
        """
        Approach, solution and complexity for a coding problem.

        With hints_only the model is told to withhold the full solution.

        Raises:
            InvalidRequest: If the problem description is empty
            BackendUnavailable: If generation is not configured
        """
        problem = (problem or "").strip()
        if not problem:
            raise InvalidRequest(msg("error.problem_required"))
        language = (language or "").strip() or "python"

        mode, mode_instruction = CODING_MODES[bool(hints_only)]
        system = CODING_PROMPT.format(language=language, mode=mode, mode_instruction=mode_instruction)
        user = (
            f"Problem: {problem}\n\n"
            f"Current Code (if any):\n```{language}\n{current_code or '# No code yet'}\n```\n\n"
            "Please help me solve this problem."
        )

        response = self._llm.chat(
            [Message(role="user", content=user)], system=system, max_tokens=CODING_MAX_TOKENS
        )
        logger.info(f"Coding assist response: {response.output_tokens} output tokens, hints_only={hints_only}")
        return parse_coding_assistance(response.content)

    def translate(self, text: str, target_language: str) -> str:
        """Translate text; returns the model's reply verbatim."""
        if not (text or "").strip() or not (target_language or "").strip():
            raise InvalidRequest(msg("error.text_required"))

        response = self._llm.chat(
            [Message(role="user", content=text)],
            system=TRANSLATE_PROMPT.format(language=target_language),
            max_tokens=TRANSLATE_MAX_TOKENS,
        )
        return response.content
