"""Built-in style presets. Fixed in code; ids are referenced by clients as promptId."""
from dataclasses import dataclass


@dataclass(frozen=True)
class BuiltinPreset:
    id: str
    name: str
    prompt: str


BUILTIN_PRESETS: dict[str, BuiltinPreset] = {
    p.id: p
    for p in (
        BuiltinPreset(
            "cyberpunk",
            "Cyberpunk",
            "A futuristic cyberpunk portrait of the person, neon rain, glowing city lights, high contrast",
        ),
        BuiltinPreset(
            "anime",
            "Anime",
            "An anime-style portrait of the person, clean line art, vibrant cel shading, expressive eyes",
        ),
        BuiltinPreset(
            "oil-painting",
            "Oil Painting",
            "A classical oil painting portrait of the person, visible brush strokes, dramatic lighting",
        ),
        BuiltinPreset(
            "watercolor",
            "Watercolor",
            "A soft watercolor portrait of the person, flowing pigments, paper texture, pastel tones",
        ),
        BuiltinPreset(
            "pixar",
            "3D Animated",
            "A 3D animated movie character portrait of the person, soft studio lighting, playful expression",
        ),
        BuiltinPreset(
            "renaissance",
            "Renaissance",
            "A Renaissance master portrait of the person, chiaroscuro lighting, rich fabrics, dark background",
        ),
        BuiltinPreset(
            "comic",
            "Comic Book",
            "A comic book portrait of the person, bold ink outlines, halftone shading, dynamic colors",
        ),
        BuiltinPreset(
            "vintage-film",
            "Vintage Film",
            "A vintage 1970s film photograph portrait of the person, warm grain, faded colors",
        ),
    )
}


def get_builtin(preset_id: str | None) -> BuiltinPreset | None:
    if not preset_id:
        return None
    return BUILTIN_PRESETS.get(preset_id)
