# backend/alphapunch/presets.py

from typing import Dict, List, Optional

from .models import PresetPrompt

KEY_COLOR_HEX = "#00FF00"

PRESETS: List[PresetPrompt] = [
    PresetPrompt(
        id="window-punch",
        label="Punched Windows",
        description="Make window views transparent.",
        text=(
            "Edit this image: Locate all window glass. Replace ONLY the view seen "
            f"through the windows with solid pure green {KEY_COLOR_HEX}. Do not change "
            "the window frames, curtains, or any interior items."
        ),
    ),
    PresetPrompt(
        id="remove-bg",
        label="Punched Background",
        description="Transparent background around subject.",
        text=(
            "Edit this image: Identify the main subject in the foreground. Replace the "
            f"entire background behind them with solid pure green {KEY_COLOR_HEX}. Keep "
            "the subject exactly as they are."
        ),
    ),
]

_BY_ID: Dict[str, PresetPrompt] = {p.id: p for p in PRESETS}

DEFAULT_PROMPT = PRESETS[0].text


def get_preset(preset_id: str) -> Optional[PresetPrompt]:
    return _BY_ID.get(preset_id)
