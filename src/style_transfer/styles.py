"""Style catalog and prompt templates for frame regeneration."""

from __future__ import annotations

from enum import Enum


class ArtStyle(str, Enum):
    REALISTIC = "Hyper-Realistic"
    CARTOON = "Vibrant Cartoon"
    THREE_D_PIXEL = "3D Pixel Art"
    ANIME = "Japanese Anime"
    VINTAGE_PHOTO = "Vintage Sepia Photograph"
    CLAYMATION = "Claymation Stop-motion"
    FANTASY_ART = "Digital Fantasy Art"
    NEON_PUNK = "Neon Punk"

    @classmethod
    def from_name(cls, name: str) -> "ArtStyle":
        """Accept either the member name (``cartoon``) or its label."""

        key = name.strip().replace("-", "_").upper()
        if key in cls.__members__:
            return cls[key]
        for style in cls:
            if style.value.lower() == name.strip().lower():
                return style
        choices = ", ".join(s.name.lower() for s in cls)
        raise ValueError(f"Unknown style {name!r}. Choose one of: {choices}")


class RegenerationEngine(str, Enum):
    STYLE_TRANSFER = "Style Transfer"
    REIMAGINE = "Re-imagine with Imagen"


STYLE_PREFIXES = {
    ArtStyle.REALISTIC: (
        "Hyper-realistic photograph, natural lighting, fine texture detail, shallow depth of field."
    ),
    ArtStyle.CARTOON: (
        "Vibrant cartoon illustration, bold clean outlines, saturated flat colors, playful shading."
    ),
    ArtStyle.THREE_D_PIXEL: (
        "3D pixel art render, voxel-like blocky geometry, crisp edges, limited color palette."
    ),
    ArtStyle.ANIME: (
        "Japanese anime key frame, cel shading, expressive linework, painterly sky and backgrounds."
    ),
    ArtStyle.VINTAGE_PHOTO: (
        "Vintage sepia photograph, film grain, soft vignette, faded warm brown tones."
    ),
    ArtStyle.CLAYMATION: (
        "Claymation stop-motion scene, sculpted plasticine surfaces, visible fingerprints, miniature set lighting."
    ),
    ArtStyle.FANTASY_ART: (
        "Digital fantasy painting, dramatic volumetric light, rich colors, epic atmosphere."
    ),
    ArtStyle.NEON_PUNK: (
        "Neon punk aesthetic, glowing magenta and cyan highlights, dark rain-slick surfaces, high contrast."
    ),
}

DESCRIBE_PROMPT = (
    "Describe this image in a concise, detailed paragraph for an image generation AI."
    " Focus on the main subject, its actions, the environment, and the overall composition."
)


def build_style_prompt(style: ArtStyle, *, with_reference: bool = False) -> str:
    """Prompt for the style-transfer engine."""

    prefix = STYLE_PREFIXES[style]
    if with_reference:
        return (
            f"{prefix} Using the second image as a style reference, regenerate the first image"
            f" in a consistent '{style.value}' style. Preserve the composition and subjects of"
            " the first image."
        )
    return (
        f"{prefix} Regenerate this image in a {style.value} style. Preserve the main subjects,"
        " composition, and overall structure of the original image."
    )


def build_reimagine_prompt(style: ArtStyle, description: str) -> str:
    return (
        f"{STYLE_PREFIXES[style]} A high-detail, cinematic image in the style of '{style.value}'."
        f" The image depicts: {description}"
    )


def build_translate_prompt(text: str, language: str) -> str:
    return (
        f"Translate the following image description into {language}."
        " Return only the translated text, without quotes or commentary.\n\n"
        f"{text}"
    )
