"""
Session reducer tests
"""

import pytest

from config import MAX_ASSISTANT_QUESTIONS, OPENING_QUESTION
from models import Questionnaire
from session import (
    REVIEW_STEP,
    Session,
    apply_inferred,
    begin_generation,
    build_brief,
    edit_answers,
    may_ask_followup,
    next_step,
    previous_step,
    receive_result,
    request_extraction,
    request_inference,
    restart,
    return_to_landing,
    send_message,
    set_answer,
    start,
    toggle_option,
)


def _ok(effect, content):
    return {"kind": effect["kind"], "token": effect["token"], "ok": True, "content": content}


def _fail(effect, error="Incorrect API key", error_kind="transport"):
    return {
        "kind": effect["kind"],
        "token": effect["token"],
        "ok": False,
        "error": error,
        "error_kind": error_kind,
    }


class TestNavigation:
    """Survey stepping and flow resets"""

    def test_step_bounds(self):
        s = start(Session(), "survey")
        assert previous_step(s).step == 0
        for _ in range(REVIEW_STEP + 5):
            s = next_step(s)
        assert s.step == REVIEW_STEP

    def test_start_resets_answers_but_keeps_epoch(self):
        s = start(Session(), "survey")
        s = set_answer(s, "projectType", "research")
        s, _ = begin_generation(s)
        fresh = start(s, "conversation")
        assert fresh.mode == "conversation"
        assert fresh.questionnaire == Questionnaire()
        assert fresh.pending == {}
        assert fresh.epoch == s.epoch

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            start(Session(), "telegram")

    def test_restart_from_result_goes_to_survey(self):
        s = Session(mode="result", document="text")
        assert restart(s).mode == "survey"
        assert restart(start(s, "description")).mode == "description"

    def test_return_to_landing(self):
        s = set_answer(start(Session(), "survey"), "projectName", "X")
        landed = return_to_landing(s)
        assert landed.mode == "landing"
        assert landed.questionnaire.project_name == ""

    def test_edit_answers_keeps_questionnaire(self):
        q = Questionnaire(project_type="personal")
        s = Session(mode="result", questionnaire=q, document="doc", generation_status="success")
        edited = edit_answers(s)
        assert edited.mode == "survey"
        assert edited.step == REVIEW_STEP
        assert edited.document == ""
        assert edited.generation_status == "idle"
        assert edited.questionnaire == q


class TestAnswers:
    """Whole-field replacement"""

    def test_set_single_value(self):
        s = set_answer(Session(mode="survey"), "dataSensitivity", "high")
        assert s.questionnaire.data_sensitivity == "high"

    def test_invalid_value_ignored(self):
        s = Session(mode="survey")
        assert set_answer(s, "projectType", "startup") == s

    def test_none_falls_back_to_default(self):
        s = set_answer(Session(mode="survey"), "projectName", "Thesis")
        s = set_answer(s, "projectName", None)
        assert s.questionnaire.project_name == ""
        assert s.questionnaire.display_name == "Untitled Project"

    def test_multi_select_keeps_selection_order(self):
        s = set_answer(Session(mode="survey"), "storage", ["shared-drive"])
        # a checklist reports its value in option order
        s = set_answer(s, "storage", ["local-encrypted", "shared-drive"])
        assert s.questionnaire.storage == ("shared-drive", "local-encrypted")
        s = set_answer(s, "storage", ["local-encrypted"])
        assert s.questionnaire.storage == ("local-encrypted",)

    def test_toggle(self):
        s = toggle_option(Session(mode="survey"), "compliance", "HIPAA")
        s = toggle_option(s, "compliance", "FERPA")
        assert s.questionnaire.compliance == ("HIPAA", "FERPA")
        s = toggle_option(s, "compliance", "HIPAA")
        assert s.questionnaire.compliance == ("FERPA",)

    def test_toggle_rejects_single_value_field(self):
        with pytest.raises(ValueError):
            toggle_option(Session(), "aiUsage", "paired")

    def test_previous_snapshot_untouched(self):
        before = Session(mode="survey")
        after = set_answer(before, "aiUsage", "autonomous")
        assert before.questionnaire.ai_usage == "paired"
        assert after.questionnaire.ai_usage == "autonomous"


class TestGeneration:
    """Generation call lifecycle"""

    def test_begin_emits_prompt(self):
        s = Session(mode="survey", step=REVIEW_STEP)
        s, effect = begin_generation(s)
        assert s.generation_status == "loading"
        assert effect["kind"] == "generate"
        assert s.pending == {"generate": effect["token"]}
        assert effect["messages"][1]["content"] == build_brief(s.questionnaire).prompt

    def test_second_request_is_noop(self):
        s, first = begin_generation(Session(mode="survey", step=REVIEW_STEP))
        again, second = begin_generation(s)
        assert second is None
        assert again == s

    def test_success_opens_result(self):
        s, effect = begin_generation(Session(mode="survey", step=REVIEW_STEP))
        s = receive_result(s, _ok(effect, "# AGENTS"))
        assert s.mode == "result"
        assert s.document == "# AGENTS"
        assert s.generation_status == "success"
        assert s.pending == {}

    def test_failure_keeps_answers(self):
        q = Questionnaire(project_type="proprietary")
        s, effect = begin_generation(Session(mode="survey", step=REVIEW_STEP, questionnaire=q))
        s = receive_result(s, _fail(effect))
        assert s.generation_status == "error"
        assert s.generation_error == "Incorrect API key"
        assert s.questionnaire == q
        assert s.mode == "survey"
        # the user may retry explicitly
        s, retry = begin_generation(s)
        assert retry is not None

    def test_stale_result_after_restart_dropped(self):
        s, effect = begin_generation(Session(mode="survey", step=REVIEW_STEP))
        s = restart(s)
        assert receive_result(s, _ok(effect, "late")) == s

    def test_superseded_result_dropped(self):
        s, old = begin_generation(Session(mode="survey", step=REVIEW_STEP))
        s = edit_answers(Session(mode="result", epoch=s.epoch, pending=s.pending))
        s, new = begin_generation(s)
        assert old["token"] != new["token"]
        assert receive_result(s, _ok(old, "late")) == s

    def test_result_after_leaving_review_dropped(self):
        s, effect = begin_generation(Session(mode="survey", step=REVIEW_STEP))
        s = previous_step(s)
        assert s.pending == {}
        assert s.generation_status == "idle"
        s = set_answer(s, "aiUsage", "autonomous")
        late = receive_result(s, _ok(effect, "# AGENTS for paired usage"))
        assert late == s
        assert late.mode == "survey"
        assert late.document == ""

    def test_previous_step_before_review_keeps_pending(self):
        s = Session(mode="survey", step=3, pending={"generate": "generate-9"})
        assert previous_step(s).pending == {"generate": "generate-9"}


class TestConversation:
    """Turn-capped follow-up questions and extraction"""

    def test_opening_question(self):
        s = start(Session(), "conversation")
        assert s.messages[0].role == "assistant"
        assert s.messages[0].content == OPENING_QUESTION

    def test_may_ask_followup(self):
        assert may_ask_followup(0)
        assert may_ask_followup(MAX_ASSISTANT_QUESTIONS - 1)
        assert not may_ask_followup(MAX_ASSISTANT_QUESTIONS)

    def test_blank_message_ignored(self):
        s = start(Session(), "conversation")
        assert send_message(s, "   ") == (s, None)

    def test_cap_stops_questions_but_accepts_input(self):
        s = start(Session(), "conversation")
        for i in range(MAX_ASSISTANT_QUESTIONS):
            s, effect = send_message(s, f"answer {i}")
            assert effect["kind"] == "followup"
            s = receive_result(s, _ok(effect, f"question {i}?"))
        assert s.followups_asked == MAX_ASSISTANT_QUESTIONS
        s, effect = send_message(s, "one more detail")
        assert effect is None
        assert s.messages[-1].content == "one more detail"

    def test_send_blocked_while_followup_pending(self):
        s, _ = send_message(start(Session(), "conversation"), "hello")
        assert send_message(s, "again") == (s, None)

    def test_followup_failure_continues(self):
        s, effect = send_message(start(Session(), "conversation"), "hello")
        s = receive_result(s, _fail(effect))
        assert s.pending == {}
        assert s.followups_asked == 0
        assert len(s.messages) == 2

    def test_extraction_requires_user_message(self):
        s, effect = request_extraction(start(Session(), "conversation"))
        assert effect is None
        assert s.extraction_status == "error"

    def test_extraction_and_apply_starts_generation(self):
        s, _ = send_message(start(Session(), "conversation"), "A public HIPAA project")
        s, effect = request_extraction(s)
        assert "User: A public HIPAA project" in effect["messages"][1]["content"]
        reply = 'Sure!\n```json\n{"repoVisibility": "public", "compliance": ["HIPAA"]}\n```'
        s = receive_result(s, _ok(effect, reply))
        assert s.extraction_status == "success"
        assert s.inferred == {"repoVisibility": "public", "compliance": ["HIPAA"]}

        s, gen = apply_inferred(s)
        assert s.mode == "survey"
        assert s.step == REVIEW_STEP
        assert s.questionnaire == Questionnaire(repo_visibility="public", compliance=["HIPAA"])
        assert gen["kind"] == "generate"
        assert s.generation_status == "loading"

    def test_unparseable_extraction_keeps_questionnaire(self):
        q = Questionnaire(project_type="research")
        s = Session(mode="conversation", questionnaire=q)
        s, _ = send_message(s, "details")
        s, effect = request_extraction(s)
        s = receive_result(s, _ok(effect, "I could not decide, sorry."))
        assert s.extraction_status == "error"
        assert s.extraction_error
        assert s.questionnaire == q
        assert s.inferred is None

    def test_all_invalid_reply_applies_defaults_and_generates(self):
        q = Questionnaire(project_type="research")
        s, _ = send_message(Session(mode="conversation", questionnaire=q), "details")
        s, effect = request_extraction(s)
        s = receive_result(s, _ok(effect, '{"projectType": "startup"}'))
        assert s.extraction_status == "success"
        assert s.inferred == {}

        s, gen = apply_inferred(s)
        assert s.questionnaire == Questionnaire()
        assert s.mode == "survey"
        assert s.step == REVIEW_STEP
        assert gen["kind"] == "generate"


class TestDescription:
    """Single-shot description intake"""

    def test_blank_description(self):
        s, effect = request_inference(start(Session(), "description"), "  ")
        assert effect is None
        assert s.extraction_error == "Please enter a project description."

    def test_inference_and_apply(self):
        s, effect = request_inference(start(Session(), "description"), "Solo research on datasets")
        assert s.description == "Solo research on datasets"
        assert s.extraction_status == "loading"
        s = receive_result(s, _ok(effect, '{"projectType": "research", "collaboration": "solo"}'))
        s, gen = apply_inferred(s)
        assert gen is None
        assert s.mode == "survey"
        assert s.step == REVIEW_STEP
        assert s.questionnaire.project_type == "research"
        assert s.questionnaire.collaboration == "solo"
        assert s.questionnaire.data_sensitivity == "medium"

    def test_duplicate_inference_ignored(self):
        s, _ = request_inference(start(Session(), "description"), "text")
        assert request_inference(s, "other text") == (s, None)

    def test_apply_without_inferred_is_noop(self):
        s = start(Session(), "description")
        assert apply_inferred(s) == (s, None)

    def test_transport_error(self):
        s, effect = request_inference(start(Session(), "description"), "text")
        s = receive_result(s, _fail(effect, "OpenAI request failed."))
        assert s.extraction_status == "error"
        assert s.extraction_error == "OpenAI request failed."

    def test_all_invalid_reply_applies_defaults(self):
        s, effect = request_inference(start(Session(), "description"), "Something vague")
        s = receive_result(s, _ok(effect, '{"aiUsage": "always", "colour": "red"}'))
        assert s.inferred == {}
        s, gen = apply_inferred(s)
        assert gen is None
        assert s.mode == "survey"
        assert s.step == REVIEW_STEP
        assert s.questionnaire == Questionnaire()


class TestStore:
    """JSON round trip through dcc.Store"""

    def test_from_empty_store(self):
        assert Session.from_store(None) == Session()

    def test_round_trip(self):
        s, _ = send_message(start(Session(), "conversation"), "hello")
        s = set_answer(s, "storage", ["cloud-synced"])
        assert Session.from_store(s.to_store()) == s
