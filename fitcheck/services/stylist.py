import json
from typing import Any, Dict, List, Optional

import structlog
from openai import AsyncOpenAI

from ..config import settings
from ..schemas.results import FitCheckResult


logger = structlog.get_logger("fitcheck")


def _preview(result: FitCheckResult) -> List[str]:
    size = result.fit.recommended_size
    return [
        f"Checking size {size} against your measurements..." if size else "Reading your measurements...",
        "Comparing the color with your palette...",
        "Putting together your fit notes...",
    ]


def _final(result: FitCheckResult) -> str:
    fit = result.fit
    parts: List[str] = []
    if fit.status == "OK":
        line = f"Go with size {fit.recommended_size}"
        if fit.backup_size:
            line += f" (or {fit.backup_size})"
        parts.append(line + f", {fit.risk} risk.")
        if fit.insights:
            parts.append(fit.insights[0])
    else:
        parts.append("Add your measurements and the size chart to get a size.")
    if result.color.verdict:
        parts.append(f"Color looks {result.color.verdict}.")
    if result.body.verdict:
        parts.append(f"The silhouette is {result.body.verdict} for your shape.")
    if result.fabric.verdict:
        parts.append(f"Fabric feels {result.fabric.verdict}.")
    return " ".join(parts)


class StylistNarrator:
    """Turns a fit check into short copy: three preview lines and one paragraph.

    Without an OpenAI key the copy is built from the result itself, so the
    output stays deterministic in tests and local runs.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.stylist_model
        self.client = AsyncOpenAI(api_key=self.api_key) if self.api_key else None

    def fallback(self, result: FitCheckResult) -> Dict[str, Any]:
        return {"preview": _preview(result), "final": _final(result)}

    async def narrate(self, result: FitCheckResult, tone: Optional[str] = None) -> Dict[str, Any]:
        if not self.client:
            return self.fallback(result)

        prompt = (
            "You are a friendly personal stylist. Given a fit check (recommended size, risk, "
            "fit insights and color, silhouette and fabric verdicts), reply with a JSON object "
            "with two keys:\n"
            "1. 'preview': a list of exactly 3 short sentences (max 12 words each) shown while the user waits.\n"
            "2. 'final': one paragraph (max 60 words) with the size, what fits well, what may be tight "
            "or loose, and one styling tip. Never contradict the verdicts.\n"
            "Do not include markdown formatting, just the raw JSON."
        )
        if tone:
            prompt += f"\n\nTone/Style: {tone}"

        content = {
            "fit": result.fit.model_dump(include={"status", "recommended_size", "backup_size", "risk", "insights"}),
            "color": {"verdict": result.color.verdict, "reasons": result.color.reasons},
            "body": {"verdict": result.body.verdict, "reasons": result.body.reasons},
            "fabric": {"verdict": result.fabric.verdict, "reasons": result.fabric.reasons},
        }
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": prompt},
                    {"role": "user", "content": json.dumps(content)},
                ],
                temperature=0.3,
                max_tokens=250,
                response_format={"type": "json_object"},
            )
            data = json.loads((resp.choices[0].message.content or "").strip())
        except Exception as e:
            logger.warning("stylist_llm_failed", error=str(e), error_type=type(e).__name__)
            return self.fallback(result)

        preview = data.get("preview")
        final = data.get("final")
        if not isinstance(preview, list) or not isinstance(final, str) or not final.strip():
            logger.warning("stylist_llm_failed", error="unexpected response shape")
            return self.fallback(result)
        return {"preview": [str(p) for p in preview[:3]], "final": final.strip()}
