"""
Prompt templates for planning, generation and editing.
"""

PLANNER_TEMPLATE = """
You are an expert Presentation Designer.
Plan a professional slide deck about: "{brief}".

INPUTS:
1. Reference Images: Use these for design style, colors, layout, and branding ONLY.
2. Context Files: Use these documents (PDFs, text) as the SOURCE TRUTH for the content, data, and details of the presentation.

TASK:
Output a JSON list of EXACTLY {count} slides.
For each slide, write a 'visualPrompt' that is extremely detailed.
This 'visualPrompt' will be sent to an image generation model to create the FINAL SLIDE as a single image.

The 'visualPrompt' MUST include:
1. The exact text to appear on the slide (Headings, bullets, body) derived from the Context Files where applicable.
2. The layout description (e.g., "Split screen", "Centered title").
3. Stylistic commonalities from the Reference Images (hex codes, logo placement).
4. Aspect ratio instruction: "Compose for 16:9".
"""

VISUAL_PROMPT_DESCRIPTION = (
    "A VERY DETAILED description of the slide's visual appearance, including layout, "
    "background, and specific text content to be rendered in the image. "
    "Mention colors, fonts, and placement."
)

GENERATE_SUFFIX = "\n\nEnsure the generated image has a 16:9 aspect ratio."

OPENAI_STYLE_NOTE = "\n\nStyle note: Create this in a professional, polished presentation style."

OPENAI_GENERATE_SUFFIX = "\n\nEnsure the image has a 16:9 aspect ratio suitable for presentations."

EDIT_TEMPLATE = (
    "Edit this image. Instruction: {instruction}.\n"
    "Maintain the exact same aspect ratio (16:9) and overall style.\n"
    "Do not change parts of the image unrelated to the instruction."
)

OPENAI_EDIT_TEMPLATE = (
    "Edit this image: {instruction}. Maintain the 16:9 aspect ratio and overall "
    "professional presentation style. Only change what is specified, keep everything else the same."
)


def planner_prompt(brief: str, count: int) -> str:
    return PLANNER_TEMPLATE.format(brief=brief, count=count)


def generation_prompt(visual_prompt: str) -> str:
    return f"{visual_prompt} {GENERATE_SUFFIX}"


def openai_generation_prompt(visual_prompt: str, has_style_refs: bool) -> str:
    # The images API takes no reference images, so style only survives as text.
    prompt = visual_prompt
    if has_style_refs:
        prompt += OPENAI_STYLE_NOTE
    return prompt + OPENAI_GENERATE_SUFFIX


def edit_prompt(instruction: str) -> str:
    return EDIT_TEMPLATE.format(instruction=instruction)


def openai_edit_prompt(instruction: str) -> str:
    return OPENAI_EDIT_TEMPLATE.format(instruction=instruction)


def text_document_part(filename: str, text: str) -> str:
    return f"[FILE: {filename}]\n{text}\n[END FILE]"
