from tracker.core.dom import FormField, FormSnapshot, ModalContext
from tracker.services.classifier import classify
from tracker.services.contacts import (
    extract_chat,
    extract_contact_fields,
    field_contact_kind,
    find_phone_in_text,
    normalize_phone,
)


def form(*fields, **kw):
    return FormSnapshot(fields=[FormField(*f) if isinstance(f, tuple) else f for f in fields], **kw)


def test_phone_normalization():
    assert normalize_phone("+91 98765 43210") == "+919876543210"
    assert normalize_phone("98765-43210") == "9876543210"
    assert normalize_phone("call me: 098 7654 3210 please") == "09876543210"
    # too short: passed through untouched
    assert normalize_phone("12345") == "12345"
    assert normalize_phone("n/a") == "n/a"
    assert normalize_phone(None) is None


def test_exact_keys_win():
    f = form(("fname", "Asha"), ("mobile", "+91 98765 43210"), ("email", "asha@example.com"))
    assert extract_contact_fields(f) == {
        "name": "Asha",
        "phone": "+919876543210",
        "email": "asha@example.com",
    }


def test_legacy_phone_alias():
    f = form(("name", "Ravi"), ("modal_my_mobile2", "9876543210"))
    assert extract_contact_fields(f)["phone"] == "9876543210"


def test_phone_like_field_name_then_tel_type():
    f = form(("name", "Ravi"), ("your_telephone", "98765 43210"))
    assert extract_contact_fields(f)["phone"] == "9876543210"

    f = form(("name", "Ravi"), FormField("contact_no", "9876543210", "tel"))
    assert extract_contact_fields(f)["phone"] == "9876543210"


def test_email_fallbacks():
    f = form(("name", "Ravi"), ("work_email", "r@example.com"))
    assert extract_contact_fields(f)["email"] == "r@example.com"

    f = form(("name", "Ravi"), FormField("contact", "x@example.com", "email"))
    assert extract_contact_fields(f)["email"] == "x@example.com"


def test_absence_is_represented_not_raised():
    assert extract_contact_fields(FormSnapshot()) == {"name": None, "phone": None, "email": None}
    f = form(("name", ""), ("phone", ""))
    assert extract_contact_fields(f) == {"name": None, "phone": None, "email": None}


def test_chat_payload_extraction():
    got = extract_chat({"first_name": "Meera", "mobile": "+91-98765-43210"})
    assert got == {"name": "Meera", "phone": "+919876543210", "email": None}


def test_phone_in_clicked_text():
    assert find_phone_in_text("Call us on +91 9876543210 today") == "+91 9876543210"
    assert find_phone_in_text("Plot 71, Sector 71") is None


def test_field_contact_kind():
    assert field_contact_kind(FormField("full_name", "A")) == "name"
    assert field_contact_kind(FormField("mobile", "9")) == "phone"
    assert field_contact_kind(FormField("email", "a@b.c")) == "email"
    assert field_contact_kind(FormField("email", "")) is None
    assert field_contact_kind(FormField("budget", "2cr")) is None


# --- classification -------------------------------------------------------


def test_button_text_classification():
    assert classify(FormSnapshot(submit_text="Get Instant Call Back")) == "call_back"
    assert classify(FormSnapshot(submit_text="Download Brochure")) == "brochure"
    assert classify(FormSnapshot(submit_text="Send Enquiry")) == "chat"
    assert classify(FormSnapshot(submit_text="Submit")) == "general"
    assert classify(FormSnapshot()) == "general"


def test_button_text_beats_hidden_field():
    f = form(("enquiredfor", "instant call"), submit_text="Download Brochure")
    assert classify(f) == "brochure"


def test_modal_title_then_trigger_for_modal_form():
    f = FormSnapshot(id="pardotForm", submit_text="Submit")
    assert classify(f, ModalContext(title="Download Brochure")) == "brochure"
    assert classify(f, ModalContext(title="Enquire", trigger_title="Instant Call")) == "call_back"
    assert classify(f, ModalContext(title="Register", trigger_enquiry="Chat with us")) == "chat"


def test_modal_context_ignored_for_other_forms():
    f = FormSnapshot(id="footerForm", submit_text="Submit")
    assert classify(f, ModalContext(title="Download Brochure")) == "general"


def test_hidden_field_fallback():
    f = form(("enquiredfor", "Instant Call"), submit_text="Submit")
    assert classify(f) == "call_back"
    f = form(FormField("x", "Brochure", "hidden", id="enquiredfor"), submit_text="Submit")
    assert classify(f) == "brochure"
