from casechat.schemas.message import (
    ChatMessage,
    StepMessage,
    UNPROCESSABLE_REPLY,
    envelope_to_message,
    is_step_message,
    to_step_message,
)

STEP = {
    'step_number': '1',
    'step_title': 'Dispute type',
    'message': 'What kind of dispute is this?',
    'options': ['Rent', 'Deposit'],
    'input_type': 'radio',
}


def test_classifier_accepts_step_shape():
    assert is_step_message(STEP)
    assert is_step_message({**STEP, 'options': [], 'input_type': 'text', 'extra': True})


def test_classifier_rejects_each_missing_field():
    for key in STEP:
        partial = {k: v for k, v in STEP.items() if k != key}
        assert not is_step_message(partial), key


def test_classifier_requires_list_options_and_never_raises():
    assert not is_step_message({**STEP, 'options': 'Rent,Deposit'})
    for value in (None, 'text', 42, ['step_number'], object()):
        assert is_step_message(value) is False


def test_boundary_conversion_validates_schema():
    step = to_step_message({**STEP, 'step_number': 2})
    assert isinstance(step, StepMessage)
    assert step.step_number == '2'
    # Structurally a step, but not a valid one.
    assert to_step_message({**STEP, 'input_type': 'date'}) is None
    assert to_step_message({**STEP, 'options': []}) is None


def test_allowed_formats_normalised():
    step = StepMessage(step_number='3', step_title='Upload', message='Send the lease',
                       input_type='document', required_formats=['pdf', '.Jpg', ' PNG '])
    assert step.allowed_formats == ['PDF', 'JPG', 'PNG']


def test_envelope_with_step_message():
    msg = envelope_to_message({'type': 'text', 'content': {'message': STEP}}, case_type='Contract dispute')
    assert msg.role == 'assistant'
    assert msg.content_type == 'step'
    assert msg.step.options == ['Rent', 'Deposit']
    assert msg.case_type == 'Contract dispute'


def test_envelope_step_as_bare_content():
    msg = envelope_to_message({'content': STEP, 'caseType': 'Property dispute'}, case_type='Other')
    assert msg.is_step
    assert msg.case_type == 'Property dispute'


def test_envelope_text_and_fallback():
    msg = envelope_to_message({'type': 'text', 'content': {'message': 'hi there'}})
    assert msg.content == 'hi there'
    assert msg.content_type == 'text'

    empty = envelope_to_message({'type': 'text', 'content': None})
    assert empty.content == UNPROCESSABLE_REPLY

    assert envelope_to_message('garbage').content == UNPROCESSABLE_REPLY


def test_envelope_media_keeps_object_content():
    msg = envelope_to_message({'type': 'image', 'content': {'url': 'https://x.test/a.png'}})
    assert msg.content_type == 'image'
    assert msg.display_text() == 'https://x.test/a.png'


def test_history_entry_wire_names():
    msg = ChatMessage.model_validate({
        'role': 'assistant', 'content': STEP, 'time': '2024-01-01T00:00:00Z',
        'contentType': 'text', 'caseType': 'Consumer complaint',
    })
    assert msg.content_type == 'step'
    wire = msg.to_wire()
    assert wire['contentType'] == 'step'
    assert wire['caseType'] == 'Consumer complaint'

    plain = ChatMessage.model_validate({'role': 'user', 'content': 'ok', 'contentType': 'step'})
    assert plain.content_type == 'text'
