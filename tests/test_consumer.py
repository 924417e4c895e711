"""Tests for the upstream stream consumer."""

from copilot_gateway.core.exceptions import FrameParseError, UpstreamError
from copilot_gateway.streaming.consumer import UpstreamStreamConsumer, delta_from_frame


def _kinds(events):
    return [event.kind for event in events]


class TestDeltaFromFrame:
    def test_chat_delta(self):
        delta = delta_from_frame({
            "id": "chatcmpl-1",
            "created": 5,
            "model": "gpt-4o",
            "choices": [{"delta": {"role": "assistant", "content": "Hi"}, "finish_reason": None}],
        })
        assert delta.text == "Hi"
        assert delta.role == "assistant"
        assert delta.id == "chatcmpl-1"
        assert delta.created == 5
        assert delta.finish_reason is None

    def test_legacy_completion_text(self):
        delta = delta_from_frame({"choices": [{"text": "x = ", "finish_reason": "length"}]})
        assert delta.text == "x = "
        assert delta.finish_reason == "length"

    def test_tool_call_fragments(self):
        delta = delta_from_frame({
            "choices": [{"delta": {"tool_calls": [
                {"index": 0, "id": "call_1", "function": {"name": "f", "arguments": ""}},
                {"index": 1, "function": {"arguments": "{}"}},
            ]}}],
        })
        first, second = delta.tool_calls
        assert (first.index, first.id, first.name, first.arguments) == (0, "call_1", "f", "")
        assert (second.index, second.id, second.name, second.arguments) == (1, None, None, "{}")
        assert delta.raw_tool_calls is not None

    def test_frame_without_choices(self):
        delta = delta_from_frame({"usage": {"total_tokens": 3}})
        assert delta.text == ""
        assert delta.usage == {"total_tokens": 3}
        assert not delta.has_choice

    def test_null_content_is_remembered(self):
        delta = delta_from_frame({"choices": [{"delta": {"content": None, "tool_calls": [
            {"index": 0, "function": {"arguments": "{}"}},
        ]}}]})
        assert delta.has_choice
        assert not delta.has_content
        assert delta.text == ""


class TestUpstreamStreamConsumer:
    def test_delta_then_done(self):
        consumer = UpstreamStreamConsumer()
        events = consumer.feed(
            b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n'
            b'data: {"choices":[{"delta":{"content":"lo"}}]}\n\n'
            b"data: [DONE]\n\n"
        )
        assert _kinds(events) == ["delta", "delta", "done"]
        assert [e.delta.text for e in events[:2]] == ["Hel", "lo"]
        assert consumer.saw_done

    def test_frames_after_done_are_dropped(self):
        consumer = UpstreamStreamConsumer()
        events = consumer.feed(b"data: [DONE]\n\ndata: {\"choices\": []}\n\n")
        assert _kinds(events) == ["done"]
        assert _kinds(consumer.feed(b"data: [DONE]\n\n")) == []

    def test_malformed_frame_is_an_error_event(self):
        consumer = UpstreamStreamConsumer()
        events = consumer.feed(b"data: {oops\n\ndata: {\"choices\":[{\"delta\":{\"content\":\"ok\"}}]}\n\n")
        assert _kinds(events) == ["error", "delta"]
        assert isinstance(events[0].error, FrameParseError)
        assert events[0].error.raw == "{oops"

    def test_inline_upstream_error(self):
        consumer = UpstreamStreamConsumer()
        events = consumer.feed(b'data: {"error": {"message": "overloaded"}}\n\n')
        assert _kinds(events) == ["error"]
        assert isinstance(events[0].error, UpstreamError)
        assert "overloaded" in events[0].error.message

    def test_finish_flushes_trailing_frame(self):
        consumer = UpstreamStreamConsumer()
        assert consumer.feed(b'data: {"choices":[{"delta":{"content":"tail"}}]}') == []
        events = consumer.finish()
        assert _kinds(events) == ["delta", "closed"]
        assert events[0].delta.text == "tail"

    def test_empty_data_is_skipped(self):
        consumer = UpstreamStreamConsumer()
        assert consumer.feed(b"data:\n\nevent: ping\n\n") == []
