"""Emotion label to speaking-tone instruction."""

from typing import Dict, Optional

from voice_bridge.config.constants import DEFAULT_EMOTION

TONES: Dict[str, str] = {
    "neutral": "Speak in a warm, relaxed and professional tone.",
    "happy": "Match the caller's good mood with an upbeat, cheerful tone.",
    "excited": "Sound enthusiastic and energetic, while staying clear and easy to follow.",
    "sad": "Speak gently and with empathy, slowing down a little.",
    "angry": "Stay calm and patient, acknowledge the frustration and keep sentences short.",
    "frustrated": "Be patient and reassuring, apologise for any trouble and get to the point.",
    "anxious": "Use a calm, steady and reassuring tone and explain next steps clearly.",
    "confused": "Speak slowly and simply, and check that the caller is following along.",
}


def tone_for(emotion: Optional[str]) -> str:
    """Return the tone instruction for an emotion label, neutral when unknown."""
    label = (emotion or "").strip().lower()
    return TONES.get(label, TONES[DEFAULT_EMOTION])
