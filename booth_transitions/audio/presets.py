"""
Music presets for transition videos.

Sample tracks are hosted as M4A; the themed booth tracks are MP3 and are
transcoded to M4A when their bytes are fetched at stitch time.
"""

from typing import Dict, List, Optional

from booth_transitions.models import MusicPreset

SAMPLE_AUDIO_CDN = "https://cdn.sogni.ai/audio-samples"
BOOTH_MUSIC_CDN = "https://cdn.sogni.ai/music"

SAMPLE_TRACKS = [
    ("grandpa-on-retro", "Grandpa on Retro", "0:30"),
    ("hank-hill-hotdog", "Hank Hill Hotdog", "0:30"),
    ("ylvis-the-fox", "Ylvis The Fox", "0:30"),
    ("look-at-that-cat", "Look at That Cat", "0:30"),
    ("mii-theme-trap-remix", "Mii Theme Trap Remix", "0:30"),
    ("jet-2-holiday-jingle", "Jet 2 Holiday Jingle", "0:30"),
    ("o-fortuna", "O Fortuna", "0:30"),
    ("peter-axel-f", "Peter Axel F", "0:30"),
]

THEMED_TRACKS = [
    ("winter-theme", "This Season (Winter Booth Theme)", "3:24", "winter"),
    ("snowflow", "Slothi on the Snowflow", "2:58", "winter"),
    ("photobooth", "Trapped in the Photobooth Part 1", "3:12", "winter"),
    ("sogni-swing", "Sogni Swing", "2:45", "winter"),
    ("render-bash", "Render Bash", "1:30", "halloween"),
    ("can-i-get-render", "Can I Get a Render?", "2:32", "halloween"),
    ("slothi-booth", "Slothi in the Booth", "2:31", "halloween"),
    ("we-spark-again", "We Spark Again", "3:01", "halloween"),
]


def parse_duration(value: Optional[str]) -> Optional[float]:
    """
    Parse an `m:ss` (or `h:mm:ss`) duration string.

    Args:
        value: Duration text such as "3:24"

    Returns:
        Duration in seconds, or None when the text is missing or malformed
    """
    if not value:
        return None
    try:
        seconds = 0.0
        for part in value.strip().split(":"):
            seconds = seconds * 60 + float(part)
    except ValueError:
        return None
    return seconds


def _build_presets() -> List[MusicPreset]:
    presets = [
        MusicPreset(
            id=f"sample-{track_id}",
            title=title,
            source_url=f"{SAMPLE_AUDIO_CDN}/{track_id}.m4a",
            duration_seconds=parse_duration(duration),
            category="samples",
        )
        for track_id, title, duration in SAMPLE_TRACKS
    ]
    presets.extend(
        MusicPreset(
            id=track_id,
            title=title,
            source_url=f"{BOOTH_MUSIC_CDN}/{track_id}.mp3",
            duration_seconds=parse_duration(duration),
            category=category,
        )
        for track_id, title, duration, category in THEMED_TRACKS
    )
    return presets


TRANSITION_MUSIC_PRESETS: List[MusicPreset] = _build_presets()
_PRESETS_BY_ID: Dict[str, MusicPreset] = {p.id: p for p in TRANSITION_MUSIC_PRESETS}


def find_preset(preset_id: str) -> Optional[MusicPreset]:
    return _PRESETS_BY_ID.get(preset_id)


def presets_by_category(category: str) -> List[MusicPreset]:
    return [p for p in TRANSITION_MUSIC_PRESETS if p.category == category]
