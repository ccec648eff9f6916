from __future__ import annotations

import jinja2

from ..shard.enums import AspectRatio

# ---------------------------------------------------------------------------
# Jinja2 template folding knobs a vendor has no native field for into the prompt
# ---------------------------------------------------------------------------

_GUIDANCE_TEMPLATE = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
).from_string(
    """
{{ prompt | trim }}
{% if negative_prompt %}

AVOID (must not appear):
{{ negative_prompt | trim }}
{% endif %}
{% if ratio %}

Composition: {{ ratio }} aspect ratio; keep the full subject within frame.
{% endif %}
{% if has_reference %}

Match the subject, palette and style of the reference image.
{% endif %}
"""
)


def render_prompt(
    prompt: str,
    *,
    negative_prompt: str | None = None,
    ratio: AspectRatio | str | None = None,
    has_reference: bool = False,
) -> str:
    """Render ``prompt`` with guidance for what the vendor cannot take natively.

    Pass ``ratio`` only when the vendor has no aspect ratio parameter.
    """
    return _GUIDANCE_TEMPLATE.render(
        prompt=prompt,
        negative_prompt=negative_prompt,
        ratio=str(ratio) if ratio else None,
        has_reference=has_reference,
    ).strip()


__all__ = ["render_prompt"]
