"""
AI trading coach backed by the Gemini `generateContent` REST endpoint.

Every call is a single best-effort request. The coach never raises into the
caller: a missing API key returns a configuration notice, and any network,
HTTP or parsing failure returns a fixed placeholder text.
"""
import json
import logging
import os
from typing import Any, Dict, List, Literal, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from tradejournal.config import CoachConfig
from tradejournal.expenses import account_roi
from tradejournal.reporting import build_setup_breakdown
from tradejournal.types import PropAccount, Trade

__all__ = [
    "CoachClient",
    "TradeReview",
    "ChatAttachment",
    "ChatMessage",
    "MISSING_KEY_MESSAGE",
    "STRATEGY_FALLBACK",
    "CHAT_FALLBACK",
]

log = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 30.0
CONTEXT_TRADES = 30

MISSING_KEY_MESSAGE = "AI coach is not configured: set the API key environment variable to enable commentary."
STRATEGY_FALLBACK = "Could not generate strategy analysis."
CHAT_FALLBACK = "Coach connection interrupted. Please try again."

# Network failures plus anything a malformed reply body can raise while parsing.
REPLY_ERRORS = (requests.RequestException, KeyError, IndexError, TypeError, ValueError, AttributeError)


class TradeReview(BaseModel):
    analysis: str
    rating: float = Field(..., ge=0, le=10)
    advice: str


TRADE_REVIEW_FALLBACK = TradeReview(
    analysis="Unable to analyze this trade right now.",
    rating=0,
    advice="Check the API key or try again later.",
)


class ChatAttachment(BaseModel):
    mime_type: str
    data: str  # base64, optionally with a "data:<mime>;base64," prefix


class ChatMessage(BaseModel):
    role: Literal["user", "model"]
    text: str
    attachments: List[ChatAttachment] = Field(default_factory=list)


def _clean_text(text: str) -> str:
    """Strips markdown emphasis the model adds despite instructions."""
    return text.replace("**", "").replace("*", "").strip()


def _strip_code_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


def _message_parts(text: str, attachments: List[ChatAttachment]) -> List[Dict[str, Any]]:
    parts: List[Dict[str, Any]] = [{"text": text}]
    for att in attachments:
        data = att.data.split(",", 1)[1] if att.data.startswith("data:") else att.data
        if data:
            parts.append({"inlineData": {"mimeType": att.mime_type, "data": data}})
    return parts


class CoachClient:
    """Thin client for trade reviews, strategy summaries and free-form chat."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    @classmethod
    def from_config(cls, config: CoachConfig) -> "CoachClient":
        return cls(os.environ.get(config.api_key_env), model=config.model, timeout=config.timeout_seconds)

    # ---------- transport ----------
    def _generate(
        self,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Sends one generateContent request and returns the concatenated reply text."""
        body: Dict[str, Any] = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if response_schema:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }

        r = self.session.post(
            f"{BASE_URL}/{self.model}:generateContent",
            params={"key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        r.raise_for_status()
        parts = r.json()["candidates"][0]["content"]["parts"]
        text = "".join(p.get("text", "") for p in parts)
        if not text:
            raise ValueError("Empty response from model")
        return text

    # ---------- features ----------
    def analyze_trade(self, trade: Trade) -> TradeReview:
        """Critiques one trade's execution and returns a 0-10 rating with one tip."""
        if not self.api_key:
            return TradeReview(analysis=MISSING_KEY_MESSAGE, rating=0, advice="Configuration error")

        mistakes = ", ".join(trade.mistakes) or "none"
        prompt = (
            "You are reviewing a single trade for a discretionary trader. "
            "Judge the execution and risk management, rate it from 1 to 10, "
            "and give one concrete improvement.\n\n"
            f"Symbol: {trade.symbol}\n"
            f"Direction: {trade.direction.value}\n"
            f"Entry / exit: {trade.entry_price} / {trade.exit_price}\n"
            f"Outcome: {trade.outcome.value}, P&L {trade.pnl}\n"
            f"Setup: {trade.setup or 'none'}\n"
            f"Mistakes tagged: {mistakes}\n"
            f"Notes: {trade.notes}"
        )
        schema = {
            "type": "OBJECT",
            "properties": {
                "analysis": {"type": "STRING"},
                "rating": {"type": "NUMBER"},
                "advice": {"type": "STRING"},
            },
            "required": ["analysis", "rating", "advice"],
        }

        try:
            text = self._generate([{"role": "user", "parts": [{"text": prompt}]}], response_schema=schema)
            return TradeReview.model_validate(json.loads(_strip_code_fences(text)))
        except (*REPLY_ERRORS, ValidationError) as e:
            log.warning(f"Trade review failed for {trade.id}: {e}")
            return TRADE_REVIEW_FALLBACK

    def strategy_summary(self, trades: List[Trade], timeframe: str) -> str:
        """Two-paragraph summary of which setups carry the account and which leak."""
        if not self.api_key:
            return MISSING_KEY_MESSAGE

        total_pnl = sum(t.pnl for t in trades)
        lines = "\n".join(
            f"- {s.name}: {s.pnl:.0f} net over {s.count} trades ({s.win_rate:.0f}% winners)"
            for s in build_setup_breakdown(trades)
        )
        prompt = (
            f"Period: {timeframe}\n"
            f"Net P&L: {total_pnl:.2f}\n"
            f"Results by setup:\n{lines or '- no trades'}\n\n"
            "Write two short plain-text paragraphs. First, what is working and "
            "which setup performs best. Second, which setup loses the most and "
            "whether the trader should reduce size or stop trading it."
        )

        try:
            return _clean_text(self._generate([{"role": "user", "parts": [{"text": prompt}]}]))
        except REPLY_ERRORS as e:
            log.warning(f"Strategy summary failed: {e}")
            return STRATEGY_FALLBACK

    def chat(
        self,
        history: List[ChatMessage],
        message: str,
        trades: List[Trade],
        accounts: List[PropAccount],
        attachments: Optional[List[ChatAttachment]] = None,
    ) -> str:
        """Mentor-style chat grounded in the trader's recent trades and accounts."""
        if not self.api_key:
            return MISSING_KEY_MESSAGE

        trade_lines = "\n".join(
            f"- {t.entry_date.date().isoformat()}: {t.symbol} {t.direction.value} "
            f"({t.outcome.value}) P&L {t.pnl}, setup {t.setup or 'none'}, "
            f"mistakes {', '.join(t.mistakes) or 'none'}"
            for t in trades[:CONTEXT_TRADES]
        )
        account_lines = "\n".join(
            f"- {a.firm_name} ({a.status.value}): payouts {a.total_payouts}, ROI {account_roi(a):.1f}%"
            for a in accounts
        )
        system_instruction = (
            "You are a direct, professional trading mentor focused on psychology "
            "and risk management. Answer in plain text without markdown. Refer to "
            "the trader's own data where it helps. When a chart image is attached, "
            "describe its structure and key levels.\n\n"
            f"Recent trades:\n{trade_lines or '- none'}\n\n"
            f"Prop accounts:\n{account_lines or '- none'}"
        )

        contents = [{"role": h.role, "parts": _message_parts(h.text, h.attachments)} for h in history]
        contents.append({"role": "user", "parts": _message_parts(message, attachments or [])})

        try:
            return _clean_text(self._generate(contents, system_instruction=system_instruction))
        except REPLY_ERRORS as e:
            log.warning(f"Coach chat failed: {e}")
            return CHAT_FALLBACK
