"""Behavioural instructions for the live interview session."""

from typing import Union

from ..config import PrepCoachConfig
from ..models.roles import JobRole
from .base import LiveSessionConfig

INTERVIEWER_INSTRUCTION = (
    "You are a professional tech interviewer conducting a behavioral and technical "
    "screening for a {role} position.\n"
    "Ask one question at a time. Keep responses concise. Start by welcoming the candidate.\n"
    "After 3-4 exchanges, politely conclude the interview and give a brief 1-sentence assessment."
)


def role_label(role: Union[JobRole, str]) -> str:
    return role.value if isinstance(role, JobRole) else str(role)


def build_interview_instruction(role: Union[JobRole, str]) -> str:
    label = role_label(role).strip()
    if not label:
        raise ValueError("A target role is required for the interview")
    return INTERVIEWER_INSTRUCTION.format(role=label)


def build_session_config(config: PrepCoachConfig, role: Union[JobRole, str]) -> LiveSessionConfig:
    """Build the live session parameters for an interview for the given role."""
    return LiveSessionConfig(
        model=config.get_model(),
        voice=config.get_voice(),
        system_instruction=build_interview_instruction(role),
        transcribe_output=config.get('gemini.transcribe_output', True),
    )
