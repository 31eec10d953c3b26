"""
explain.py

Deterministic, template-based explanations for stored feed scores.
Built only from the persisted reason breakdown; used by the inspection endpoint.
"""

from typing import Dict, Any


def explain_feed_score(reason: Dict[str, Any]) -> str:
    parts = []
    if reason.get("followed"):
        parts.append(f"From someone you follow (+{reason.get('social', 0):g}).")
    elif reason.get("explore"):
        parts.append(f"Outside your follows, exploration boost (+{reason.get('explore', 0):g}).")
    if reason.get("similar_show"):
        parts.append(f"About a show you like (+{reason.get('similar', 0):g}).")
    base = reason.get("base")
    decay = reason.get("decay")
    if base is not None and decay is not None:
        parts.append(f"Engagement {base:g} weighted by freshness {decay:.2f}.")
    if reason.get("diversity"):
        parts.append(f"Repetition penalty {reason['diversity']:g}.")
    if not parts:
        return "Selected from recent posts."
    return " ".join(parts)
