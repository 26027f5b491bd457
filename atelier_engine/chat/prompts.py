"""Prompt text for the studio agent and the image/tech-pack stages."""

from __future__ import annotations

STUDIO_AGENT_SYSTEM = """You are the lead designer of an atelier, a high-end fashion design co-pilot.

GOAL:
Collaborate with the user to design unique apparel. Do not rush to generate designs; talk first.

CONTEXT AWARENESS:
- You receive a list of available inspiration assets (id, name, kind).
- You cannot see an asset's content unless it is marked [Shared] or you load it.
- If the user refers to an asset you have not seen (for example "look at the video" or
  "use the red image"), call view_assets with its id before answering.
- Assets marked [Shared] are already attached to this message.

WORKFLOW:
1. Converse: ask clarifying questions about the vision.
2. Discover: load referenced assets with view_assets.
3. Reason: combine the visual inputs with the written requirements.
4. Generate: only when the user asks for designs or confirms a direction, call generate_concepts
   with two clearly distinct directions.

Be professional, concise and specific about materials, silhouette and construction."""

REQUESTED_ASSETS_NOTE = (
    "[System] The requested assets are now loaded above. Answer the user's message using them. "
    "Do not request assets again."
)

PRIMARY_IMAGE_PROMPT = (
    "Photorealistic high-fashion product render of a single garment design, full look, front view, "
    "worn on a neutral mannequin against a plain neutral background, studio lighting, 8k detail. "
    "Design: {description}"
)

ARTISTIC_IMAGE_PROMPT = (
    "Redraw the garment in the attached image as an expressive fashion illustration: marker and "
    "gouache on paper, elongated croquis figure, loose confident linework. Keep the exact same "
    "silhouette, colors, materials and details as the attached image."
)

TECHNICAL_IMAGE_PROMPT = (
    "Produce a technical flat drawing of the garment in the attached image: black line art on white, "
    "front and back views side by side, no model, no shading, with visible seam lines, stitching, "
    "closures and trims. Match the attached design exactly."
)

EDIT_INSTRUCTION_PROMPT = (
    "The marked region of this fashion design denotes the area to change. "
    "Change only that region per the instruction: {instruction}. "
    "Remove all mask markings from the output. "
    "Keep the rest of the design exactly the same."
)

TECH_PACK_SYSTEM = (
    "You are a senior apparel technical designer. From the attached design images, write a "
    "production tech pack: a style number, a season code, a bill of materials (location, item, "
    "description, quantity, cost estimate in USD), graded-size-M measurements (point of measure, "
    "value, unit, tolerance), construction notes and a total cost estimate. Name the main body "
    "fabric with location 'Body'. Respond only with JSON matching the schema."
)

TECH_PACK_USER_PROMPT = "Concept: {name}\nDescription: {description}"

PHOTO_PROMPT = (
    "Place a fashion model wearing exactly the garment from the attached image into this scene: "
    "{scenario}. Editorial photograph, natural pose, photorealistic. Keep the garment design unchanged."
)

VIDEO_PROMPT = (
    "Cinematic fashion film: a model wearing exactly the garment from the image walks through {scenario}. "
    "Smooth camera movement, fabric in motion, the garment design stays unchanged."
)


def history_line(role: str, text: str) -> str:
    return f"{role.upper()}: {text}"


def manifest_line(asset_id: str, name: str, kind: str, shared: bool) -> str:
    flag = " [Shared]" if shared else ""
    return f"- {asset_id}: {name} ({kind}){flag}"


def shared_asset_label(name: str, asset_id: str) -> str:
    return f"[User is sharing asset {name} (id {asset_id})]"


def requested_asset_label(name: str, asset_id: str) -> str:
    return f"[Requested asset {name} (id {asset_id})]"


def inline_text_asset(label: str, text: str) -> str:
    return f"{label}\n{text}"
