from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from tracker.core.dom import FormSnapshot, ModalContext

logger = logging.getLogger(__name__)

MODAL_FORM_ID = "pardotForm"
HIDDEN_FIELD = "enquiredfor"

# Keyword groups, checked in this order. First hit wins.
KEYWORD_GROUPS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("call_back", ("instant call", "call back")),
    ("brochure", ("brochure", "download")),
    ("chat", ("enquiry", "chat", "send")),
)


def match_keywords(text: Optional[str]) -> Optional[str]:
    t = (text or "").lower()
    if not t:
        return None
    for form_type, words in KEYWORD_GROUPS:
        if any(w in t for w in words):
            return form_type
    return None


def classify(form: FormSnapshot, modal: Optional[ModalContext] = None) -> str:
    """
    Intent of a submitted form: call_back | brochure | chat | general.

    Signals by trust: submit button text, then modal context (modal form
    only), then the hidden `enquiredfor` field.
    """
    form_type = match_keywords(form.submit_text)
    if form_type:
        logger.debug("form type %s from button text %r", form_type, form.submit_text)
        return form_type

    if form.id == MODAL_FORM_ID and modal is not None:
        form_type = match_keywords(modal.title)
        if form_type:
            logger.debug("form type %s from modal title", form_type)
            return form_type

        trigger = f"{modal.trigger_title} {modal.trigger_enquiry}".strip()
        form_type = match_keywords(trigger)
        if form_type:
            logger.debug("form type %s from modal trigger", form_type)
            return form_type

    hidden = form.find(name=HIDDEN_FIELD) or form.find(id=HIDDEN_FIELD)
    if hidden is not None:
        form_type = match_keywords(hidden.value)
        if form_type:
            logger.debug("form type %s from %s field", form_type, HIDDEN_FIELD)
            return form_type

    return "general"
