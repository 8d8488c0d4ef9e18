from models.event_models import AiResponse, ConversationEnded, ConversationStarted, ErrorEvent, Interrupted, Listening

from client_view import ClientPhase, ConversationView


def started(conversation_id="c1"):
    return ConversationStarted(message="Hello! I'm Rev", conversation_id=conversation_id)


def test_full_turn_sequence():
    view = ConversationView()
    assert view.phase is ClientPhase.AWAITING_START and not view.active

    view.apply(started())
    assert view.active and view.last_message == "Hello! I'm Rev"
    assert view.phase is ClientPhase.AWAITING_START

    view.apply(Listening(conversation_id="c1"))
    assert view.phase is ClientPhase.LISTENING

    view.utterance_sent()
    assert view.phase is ClientPhase.THINKING
    assert view.can_interrupt

    view.apply(AiResponse(text="The RV400 does 150 km.", conversation_id="c1"))
    assert view.phase is ClientPhase.SPEAKING
    assert view.last_message == "The RV400 does 150 km."
    assert view.status_text == "AI is speaking..."


def test_events_apply_idempotently():
    view = ConversationView().apply(started()).apply(Listening(conversation_id="c1"))
    view.utterance_sent()
    reply = AiResponse(text="Hi", conversation_id="c1")

    view.apply(reply).apply(reply)
    view.apply(started())

    assert view.phase is ClientPhase.SPEAKING
    assert view.last_message == "Hi"


def test_interrupt_then_listening():
    view = ConversationView().apply(started()).apply(Listening(conversation_id="c1"))
    view.apply(AiResponse(text="Hi", conversation_id="c1"))

    view.apply(Interrupted(message="I'm listening...", conversation_id="c1"))
    assert view.phase is ClientPhase.INTERRUPTED
    view.apply(Listening(conversation_id="c1"))
    assert view.phase is ClientPhase.LISTENING

    view.apply(Interrupted(message="I'm listening...", conversation_id="c1"))
    assert view.phase is ClientPhase.LISTENING


def test_events_for_other_conversations_are_ignored():
    view = ConversationView().apply(started("c1"))
    view.apply(AiResponse(text="stale", conversation_id="old"))
    assert view.last_message == "Hello! I'm Rev"


def test_wire_dicts_are_accepted():
    view = ConversationView().apply({"type": "conversationStarted", "message": "Hey", "conversationId": "c9"})
    view.apply({"type": "listening", "conversationId": "c9"})
    assert view.conversation_id == "c9"
    assert view.phase is ClientPhase.LISTENING


def test_error_keeps_phase():
    view = ConversationView().apply(started()).apply(Listening(conversation_id="c1"))
    view.apply(ErrorEvent(message="Audio too quiet. Please speak louder.", conversation_id="c1"))
    assert view.error == "Audio too quiet. Please speak louder."
    assert view.phase is ClientPhase.LISTENING


def test_end_ignores_late_events_until_restart():
    view = ConversationView().apply(started())
    view.apply(ConversationEnded(message="Conversation ended.", conversation_id="c1", reason="idle_timeout"))
    assert view.phase is ClientPhase.ENDED and not view.active

    view.apply(Listening(conversation_id="c1"))
    assert view.phase is ClientPhase.ENDED

    view.apply(started("c1"))
    assert view.active and view.phase is ClientPhase.AWAITING_START


def test_end_locally():
    view = ConversationView().apply(started())
    view.end_locally()
    assert view.phase is ClientPhase.ENDED
    assert view.status_text == "Conversation ended"
