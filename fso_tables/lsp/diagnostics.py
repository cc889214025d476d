"""Diagnostic normalization and formatting."""

from __future__ import annotations

# DiagnosticSeverity values of the Language Server Protocol
_SEVERITY_LABELS: dict[int, str] = {
    1: "error",
    2: "warning",
    3: "info",
    4: "hint",
}


def normalize_diagnostics(raw: list[dict]) -> list[dict]:
    """Convert raw LSP diagnostics into a simplified format.

    Returns:
        A list of dicts with keys ``severity``, ``line``, ``character``,
        ``message``, ``source`` and ``code``.
    """
    results: list[dict] = []
    for diag in raw:
        severity_num = diag.get("severity", 1)
        rng = diag.get("range", {})
        start = rng.get("start", {})
        results.append(
            {
                "severity": _SEVERITY_LABELS.get(severity_num, "unknown"),
                "line": start.get("line", 0),
                "character": start.get("character", 0),
                "message": diag.get("message", ""),
                "source": diag.get("source", ""),
                "code": diag.get("code", ""),
            }
        )
    return results


def has_errors(diagnostics: list[dict]) -> bool:
    return any(diag.get("severity") == "error" for diag in diagnostics)


def format_diagnostics(file_path: str, diagnostics: list[dict]) -> str:
    """Format normalized diagnostics as a human-readable block.

    Example output::

        ships.tbl
          error line 42: Expected $Name: [fso-lsp-error]
    """
    if not diagnostics:
        return f"{file_path}: no problems"

    lines: list[str] = [file_path]
    for diag in diagnostics:
        severity = diag.get("severity", "unknown")
        line = diag.get("line", 0)
        message = diag.get("message", "")
        code = diag.get("code") or diag.get("source", "")
        code_suffix = f" [{code}]" if code else ""
        lines.append(f"  {severity} line {line + 1}: {message}{code_suffix}")
    return "\n".join(lines)
