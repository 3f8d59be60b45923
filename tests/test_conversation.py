import pytest

from kunafa_advisor.conversation import Conversation, TurnStatus
from kunafa_advisor.errors import ConversationStateError


@pytest.fixture
def streaming_conversation():
    conversation = Conversation()
    conversation.append_user("Initial analysis request")
    conversation.append_model_placeholder()
    return conversation


def test_placeholder_is_pending_and_empty(streaming_conversation):
    turn = streaming_conversation.turns[-1]
    assert turn.role == "model"
    assert turn.content == ""
    assert turn.status is TurnStatus.PENDING
    assert streaming_conversation.in_progress


@pytest.mark.parametrize(
    "fragments",
    [
        ["Hel", "lo, ", "world!"],
        ["Na", "mas", "te 🙏 ", "₹", "1,000"],
        [""],
        ["a"] * 50,
    ],
)
def test_fragments_concatenate_in_order(streaming_conversation, fragments):
    for fragment in fragments:
        streaming_conversation.append_fragment(fragment)

    turn = streaming_conversation.turns[-1]
    assert turn.content == "".join(fragments)
    assert len(turn.content) == sum(len(f) for f in fragments)
    assert turn.status is TurnStatus.STREAMING


def test_append_fragment_after_user_turn_fails():
    conversation = Conversation()
    conversation.append_user("How can I cut costs?")
    with pytest.raises(ConversationStateError):
        conversation.append_fragment("text")
    assert conversation.history() == [{"role": "user", "content": "How can I cut costs?"}]


def test_append_fragment_on_empty_log_fails():
    with pytest.raises(ConversationStateError):
        Conversation().append_fragment("text")


def test_completed_turn_is_immutable(streaming_conversation):
    streaming_conversation.append_fragment("Done.")
    streaming_conversation.complete()

    assert streaming_conversation.turns[-1].status is TurnStatus.COMPLETE
    with pytest.raises(ConversationStateError):
        streaming_conversation.append_fragment(" more")
    with pytest.raises(ConversationStateError):
        streaming_conversation.replace_content("rewritten")


def test_no_new_turn_while_streaming(streaming_conversation):
    with pytest.raises(ConversationStateError):
        streaming_conversation.append_user("another question")
    with pytest.raises(ConversationStateError):
        streaming_conversation.append_model_placeholder()


def test_follow_up_pair_after_completion(streaming_conversation):
    streaming_conversation.replace_content("Analysis")
    streaming_conversation.complete()
    streaming_conversation.append_user("What about rent?")
    streaming_conversation.append_model_placeholder()

    assert [t.role for t in streaming_conversation.turns] == ["user", "model", "user", "model"]
    assert streaming_conversation.in_progress


def test_fail_replaces_content(streaming_conversation):
    streaming_conversation.append_fragment("partial")
    streaming_conversation.fail("Sorry, I encountered an error: boom")

    turn = streaming_conversation.turns[-1]
    assert turn.content == "Sorry, I encountered an error: boom"
    assert turn.status is TurnStatus.FAILED
    assert not streaming_conversation.in_progress


def test_reset_clears_everything(streaming_conversation):
    streaming_conversation.reset()
    assert len(streaming_conversation) == 0
    assert streaming_conversation.history() == []
    streaming_conversation.append_user("fresh start")
    assert len(streaming_conversation) == 1
