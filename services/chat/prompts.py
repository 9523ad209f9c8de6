"""Prompt helpers for chat, image editing, image generation and suggestions."""

from __future__ import annotations

SUGGESTIONS_SENTINEL = "---SUGGESTIONS---"
REASONING_OPEN_TAG = "<THOUGHT_PROCESS>"
REASONING_CLOSE_TAG = "</THOUGHT_PROCESS>"

IMAGE_EDIT_KIND = "IMAGE_EDIT"
IMAGE_GENERATION_KIND = "IMAGE_GEN"


def base_system_prompt() -> str:
	"""Return the assistant persona with the suggestions and artifact rules."""
	return (
		"You are a helpful and friendly AI assistant.\n\n"
		"INSTRUCTION FOR SUGGESTIONS:\n"
		"At the very end of your response, you MUST provide 3 short, relevant follow-up actions or questions "
		"for the user. These suggestions should be like offers to help them do more with the topic.\n"
		"Format:\n"
		f"{SUGGESTIONS_SENTINEL}\n"
		"Suggestion 1\n"
		"Suggestion 2\n"
		"Suggestion 3\n\n"
		"IMPORTANT: The suggestions MUST be in the SAME LANGUAGE as the user's input and your response.\n\n"
		"ARTIFACT INSTRUCTION:\n"
		"If the user asks to generate code for a UI, website, or component (HTML/CSS/JS), ALWAYS output a "
		"complete, self-contained single HTML file within ```html code blocks. Include internal CSS in "
		"<style> tags and JS in <script> tags."
	)


def reasoning_prompt() -> str:
	"""Return the block that forces reasoning into a single pair of sentinel tags."""
	return (
		"[SYSTEM OVERRIDE: CHAIN OF THOUGHT MODE ENABLED]\n\n"
		"Explain your internal reasoning steps BEFORE giving the final answer.\n"
		"Mandatory rules:\n"
		"1. Do NOT answer the core question immediately.\n"
		"2. Think step by step.\n"
		"3. Break the problem into logical sub-components.\n"
		"4. Analyse every variable and possible mistake.\n"
		f"5. Wrap the whole thought process in exactly one {REASONING_OPEN_TAG} ... {REASONING_CLOSE_TAG} block.\n"
		"6. Give the final answer strictly AFTER the closing tag.\n\n"
		"Example:\n"
		f"{REASONING_OPEN_TAG}\n"
		"First, I identify the value of X.\n"
		"Second, I apply formula Y...\n"
		f"{REASONING_CLOSE_TAG}\n"
		"The answer is Z."
	)


def location_prompt(latitude: float, longitude: float) -> str:
	"""Return a short line grounding local searches."""
	return f"The user's approximate location is latitude {latitude:.4f}, longitude {longitude:.4f}."


def image_edit_prompt(task: str) -> str:
	"""Return the strict identity-preserving edit instruction."""
	return (
		"STRICT INSTRUCTION FOR IMAGE EDITING:\n"
		f"1. Task: {task}\n"
		"2. CONSTRAINT: You MUST PRESERVE the identity, facial features, skin tone, and structure of the main "
		"subject EXACTLY.\n"
		"3. CONSTRAINT: Do NOT regenerate the face. Keep the face looking exactly like the original image.\n"
		"4. CONSTRAINT: Keep the background, lighting, and style identical unless the task specifically asks "
		"to change them.\n"
		"5. Make the edit blend naturally. Return a photorealistic image."
	)


def prompt_enhancer_prompt(prompt: str) -> str:
	"""Return the instruction used to enrich an image generation prompt."""
	return (
		"You are an expert prompt engineer for AI image generation. "
		"Rewrite the following user prompt to generate a high-fidelity, 8k resolution, photorealistic, "
		"and cinematically lit image. Add details about texture, lighting, and composition. "
		"Keep the original subject and intent. Return ONLY the enhanced prompt text, no explanations.\n\n"
		f'Original Prompt: "{prompt}"'
	)


def suggestion_prompt(prompt: str, kind: str) -> str:
	"""Return the follow-up suggestion request for a finished image task."""
	if kind == IMAGE_GENERATION_KIND:
		context = (
			"The user just generated an image. Suggest 3 short follow-up modifications "
			"(e.g. 'Change lighting', 'Make it cyberpunk', 'Change aspect ratio')."
		)
	else:
		context = (
			"The user just edited an image. Suggest 3 short refinement tasks "
			"(e.g. 'Remove background', 'Fix colors', 'Make it brighter')."
		)
	return (
		f"System: {context}\n"
		f'User Prompt was: "{prompt}"\n\n'
		"Task: Provide 3 short, punchy suggestion phrases in the SAME LANGUAGE as the User Prompt. "
		"Separate them by newlines. No numbers or bullets."
	)
