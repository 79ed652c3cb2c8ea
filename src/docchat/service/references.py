"""Citation block appended to generated answers."""

from docchat.constants import REFERENCES_HEADING, REFERENCES_SEPARATOR


def strip_generated_prefix(identifier: str) -> str:
    """Remove a generated prefix such as a UUID from a stored file name.

    The part before the first underscore is dropped only when it contains a
    hyphen, e.g. ``"a78c2d2a-289e-...-0751eb348cfc_report.pdf"`` becomes
    ``"report.pdf"`` while ``"annual_report.pdf"`` is kept as is.
    """
    underscore = identifier.find("_")
    if 0 < underscore < len(identifier) - 1 and "-" in identifier[:underscore]:
        return identifier[underscore + 1 :]
    return identifier


class ReferenceAnnotator:
    """Appends a deduplicated list of source documents to an answer."""

    def __init__(
        self, heading: str = REFERENCES_HEADING, separator: str = REFERENCES_SEPARATOR
    ) -> None:
        self.heading = heading
        self.separator = separator

    def annotate(self, answer: str, source_ids) -> str:
        """Append a reference block listing each source once.

        Args:
            answer: Generated answer text
            source_ids: Source identifiers in retrieval order, may repeat

        Returns:
            str: The answer with a reference block, or unchanged when there are no sources
        """
        unique_ids = list(dict.fromkeys(sid for sid in source_ids if sid))
        if not unique_ids:
            return answer

        lines = [f"- {strip_generated_prefix(sid)}" for sid in unique_ids]
        return f"{answer}{self.separator}{self.heading}\n\n" + "\n".join(lines) + "\n"
