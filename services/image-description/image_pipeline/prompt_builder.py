"""
Prompt builder: ConceptSet -> text generation instruction.
"""

from .models import ConceptSet

LABEL_SEPARATOR = ", "

PROMPT_TEMPLATE = (
    "Based on the following labels detected in an image: {labels}. "
    "Please generate a single, descriptive sentence about the image."
)


def build_prompt(concepts: ConceptSet) -> str:
    """Join concept names in detector order and fill the description template."""
    if not concepts:
        raise ValueError("Cannot build a prompt from an empty concept set")
    return PROMPT_TEMPLATE.format(labels=LABEL_SEPARATOR.join(concepts.names()))
