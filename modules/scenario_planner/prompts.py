"""
Prompt construction for scenario synthesis.

Builds the creative-director system prompt and the multimodal user message
(reference images as data: URLs plus guidance text).
"""

from typing import Any, Dict, List

from shared.image_processing import to_data_url

DEFAULT_GUIDANCE = (
    "Build an emotionally rich scenario from the images, one where the "
    "person's feelings come alive on screen."
)

SCENARIO_JSON_SHAPE = """{
  "title": "Eye-catching campaign title",
  "concept": "Detailed description of the ad concept and its emotional arc",
  "targetAudience": "Primary target audience",
  "marketingHook": "Main marketing hook or slogan",
  "imagePrompts": ["shot 1 prompt", "shot 2 prompt", "..."]
}"""


def build_system_prompt(shot_count: int) -> str:
    """
    Build the creative-director system prompt.

    Args:
        shot_count: Exact number of image prompts the response must contain

    Returns:
        System prompt text
    """
    return f"""You are a world-class creative director specializing in emotional storytelling and precise cinematic mise-en-scene.

1. **Deep analysis:** Identify the essence of the uploaded product/images and the fundamental human emotion they can convey.

2. **Emotional arc:** This is not a list of ad images. The {shot_count} images must play like a short film with a beginning, development, turn and resolution.
   - Example flow: [everyday lack/boredom] -> [chance discovery/curiosity] -> [first encounter with the product] -> [immersion and experience] -> [inner change/joy] -> [afterglow].

3. **Write a {shot_count}-shot cinematic sequence of prompts (most important):**
   - **Continuity:** Each prompt must follow naturally, visually and emotionally, from the previous shot. Avoid abrupt jumps.
   - **Micro-expressions:** Instead of "smiling", describe "a faint smile spreading at the corner of the lips", "eyes welling with emotion", "trembling fingertips".
   - **Cinematic direction:** Use extreme close-ups (eyes, lips, hands), dreamy shallow focus, chiaroscuro lighting and first-person viewpoints to deepen immersion.
   - Each prompt must describe lighting, texture and lens effects concretely enough for an image model to render a high-resolution cinematic frame.

Goal: a viewer who sees the {shot_count} images in order should feel the character's emotional journey without any dialogue, and feel the value of the product.

Respond with a single JSON object of this shape, with exactly {shot_count} entries in "imagePrompts":
{SCENARIO_JSON_SHAPE}"""


def build_user_content(images: List[bytes], guidance: str) -> List[Dict[str, Any]]:
    """
    Build the multimodal user message content.

    Args:
        images: Normalized PNG payloads, in upload order
        guidance: User guidance ("" falls back to DEFAULT_GUIDANCE)

    Returns:
        OpenAI chat content parts (image_url parts followed by one text part)
    """
    parts: List[Dict[str, Any]] = [
        {"type": "image_url", "image_url": {"url": to_data_url(image), "detail": "auto"}}
        for image in images
    ]
    parts.append({
        "type": "text",
        "text": f'User guidance: "{guidance or DEFAULT_GUIDANCE}"'
    })
    return parts
