"""Patient fields carried in a calendar event's free-text description.

The layout is one labelled line per field, always in this order::

    Paciente: Ana
    Telefone: 5511999999999
    Obs: check-up

Decoding takes the first line that starts with each label. A value that
itself starts with another label (e.g. a name beginning with "Telefone:") is
ambiguous and is not escaped.
"""

from pydantic import BaseModel

PATIENT_LABEL = "Paciente:"
PHONE_LABEL = "Telefone:"
NOTES_LABEL = "Obs:"

# Written when there are no notes; decodes back to an empty string
NOTES_PLACEHOLDER = "Sem observações"


class DescriptionFields(BaseModel):
    """Structured content of an event description."""

    patient_name: str = ""
    phone: str = ""
    notes: str = ""


def _single_line(value: str) -> str:
    return " ".join(value.split("\n")).strip()


def encode(fields: DescriptionFields) -> str:
    """Render ``fields`` as the three-line description layout."""
    notes = _single_line(fields.notes) or NOTES_PLACEHOLDER
    return "\n".join(
        [
            f"{PATIENT_LABEL} {_single_line(fields.patient_name)}",
            f"{PHONE_LABEL} {_single_line(fields.phone)}",
            f"{NOTES_LABEL} {notes}",
        ]
    )


def _field(lines: list[str], label: str) -> str:
    for line in lines:
        if line.startswith(label):
            return line[len(label) :].strip()
    return ""


def decode(text: str | None) -> DescriptionFields:
    """Parse a description; missing labels yield empty strings, never errors."""
    if not text:
        return DescriptionFields()

    lines = text.splitlines()
    notes = _field(lines, NOTES_LABEL)
    return DescriptionFields(
        patient_name=_field(lines, PATIENT_LABEL),
        phone=_field(lines, PHONE_LABEL),
        notes="" if notes == NOTES_PLACEHOLDER else notes,
    )


def has_labels(text: str | None) -> bool:
    """True when ``text`` carries at least one labelled line."""
    if not text:
        return False
    labels = (PATIENT_LABEL, PHONE_LABEL, NOTES_LABEL)
    return any(line.startswith(labels) for line in text.splitlines())
