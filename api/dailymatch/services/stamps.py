from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Stamp:
    id: str
    emoji: str
    label: str
    category: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


STAMP_CATEGORIES = ("face", "gesture", "symbol")

STAMPS: tuple[Stamp, ...] = (
    Stamp("happy_001", "😊", "happy", "face"),
    Stamp("love_001", "😍", "love", "face"),
    Stamp("laugh_001", "😂", "laugh", "face"),
    Stamp("excited_001", "🤩", "excited", "face"),
    Stamp("cool_001", "😎", "cool", "face"),
    Stamp("think_001", "🤔", "thinking", "face"),
    Stamp("surprise_001", "😮", "surprised", "face"),
    Stamp("sleepy_001", "😴", "sleepy", "face"),
    Stamp("sad_001", "😢", "sad", "face"),
    Stamp("sweat_001", "😅", "phew", "face"),
    Stamp("clap_001", "👏", "clap", "gesture"),
    Stamp("thumbsup_001", "👍", "like", "gesture"),
    Stamp("wave_001", "👋", "wave", "gesture"),
    Stamp("ok_001", "👌", "ok", "gesture"),
    Stamp("pray_001", "🙏", "please", "gesture"),
    Stamp("shrug_001", "🤷", "no idea", "gesture"),
    Stamp("muscle_001", "💪", "you got this", "gesture"),
    Stamp("peace_001", "✌️", "peace", "gesture"),
    Stamp("fist_001", "✊", "fight", "gesture"),
    Stamp("point_001", "👉", "this", "gesture"),
    Stamp("heart_001", "❤️", "heart", "symbol"),
    Stamp("fire_001", "🔥", "fire", "symbol"),
    Stamp("sparkle_001", "✨", "sparkle", "symbol"),
    Stamp("star_001", "⭐", "star", "symbol"),
    Stamp("party_001", "🎉", "party", "symbol"),
    Stamp("hundred_001", "💯", "hundred", "symbol"),
    Stamp("music_001", "🎵", "music", "symbol"),
    Stamp("coffee_001", "☕", "coffee", "symbol"),
    Stamp("moon_001", "🌙", "good night", "symbol"),
    Stamp("sun_001", "☀️", "good morning", "symbol"),
)

_BY_ID = {s.id: s for s in STAMPS}


def get_stamp_by_id(stamp_id: str | None) -> Stamp | None:
    if not stamp_id:
        return None
    return _BY_ID.get(stamp_id)


def stamps_by_category(category: str) -> list[Stamp]:
    return [s for s in STAMPS if s.category == category]
