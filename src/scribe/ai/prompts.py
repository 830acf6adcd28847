"""Prompt construction for the note rewrite command."""

from __future__ import annotations

__all__ = ["NOTE_TEMPLATE", "build_rewrite_prompt"]

NOTE_TEMPLATE = """\
**Client Name:**

## Agenda
-

## Meeting Notes
-

## Participants
-

## Next Steps
- [ ]

## References
-
"""


def build_rewrite_prompt(note_text: str, *, template: str = NOTE_TEMPLATE) -> str:
    """Wrap ``note_text`` and ``template`` in the rewrite instructions.

    Both strings are embedded verbatim. Nothing is escaped or validated, so a
    note that already follows the template (or contains braces) is fine.
    """

    return (
        "You are a meeting-notes assistant. Rewrite the note below so that it "
        "follows the template exactly: keep the template's headings and their "
        "order, move every fact from the note into the section where it "
        "belongs, and leave a section empty when the note says nothing about it.\n"
        "Respond only with the rewritten note in the template's format. Do not "
        "add an introduction, explanations, or any text outside the template.\n"
        "\n"
        "### Template\n"
        + template
        + "\n"
        "### Note\n"
        + note_text
        + "\n"
        "### Rewritten note\n"
    )
