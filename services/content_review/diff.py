import difflib

from shared.models.review import DraftDiff


def build_diff(original: str, current: str, context_lines: int = 3) -> DraftDiff:
    """Line-based unified diff between a draft's original and current content."""
    original_lines = (original or "").splitlines()
    current_lines = (current or "").splitlines()
    lines = list(
        difflib.unified_diff(
            original_lines,
            current_lines,
            fromfile="original",
            tofile="current",
            n=context_lines,
            lineterm="",
        )
    )
    added = sum(1 for line in lines if line.startswith("+") and not line.startswith("+++"))
    removed = sum(1 for line in lines if line.startswith("-") and not line.startswith("---"))
    return DraftDiff(
        unified="\n".join(lines),
        added_lines=added,
        removed_lines=removed,
        changed=(original or "") != (current or ""),
    )
