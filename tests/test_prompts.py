"""Tests for customer-facing booking messages."""

from datetime import timedelta

from src.prompts.prompt_templates import (
    ASK_FOR_FREE_TIMES,
    build_confirmation_message,
    build_suggestion_lines,
    build_unavailable_message,
)
from src.prompts.system_prompts import BOOKING_COMMAND_FORMAT, SCHEDULING_INSTRUCTIONS
from src.scheduling.alternatives import Alternatives
from src.scheduling.slot_engine import Slot
from src.tools.booking import parse_booking_command
from tests.conftest import TODAY, TOMORROW


class TestSuggestionLines:
    def test_same_day_first(self):
        alternatives = Alternatives(
            same_day_before=Slot(TODAY, 590),
            next_day_first_open=Slot(TOMORROW, 540),
        )
        assert build_suggestion_lines(TODAY, alternatives, TODAY) == [
            "Mas tenho disponível às 09h50 hoje!"
        ]

    def test_next_day_when_same_day_empty(self):
        alternatives = Alternatives(next_day_first_open=Slot(TOMORROW, 540))
        assert build_suggestion_lines(TODAY, alternatives, TODAY) == [
            "Infelizmente hoje está sem vagas. Mas tenho disponível às 09h00 amanhã!"
        ]

    def test_nothing_found(self):
        assert build_suggestion_lines(TODAY, Alternatives(), TODAY) == [ASK_FOR_FREE_TIMES]


class TestUnavailableMessage:
    def test_without_alternatives_no_question(self):
        message = build_unavailable_message(TOMORROW, 600, Alternatives(), TODAY)
        assert message == (
            "Peço desculpa, mas o horário das 10h00 de amanhã já não está disponível.\n\n"
            + ASK_FOR_FREE_TIMES
        )

    def test_far_date_label(self):
        far = TODAY + timedelta(days=8)
        message = build_unavailable_message(far, 600, Alternatives(same_day_after=Slot(far, 630)), TODAY)
        assert "de 25 de março" in message
        assert message.endswith("Qual preferes?")


class TestConfirmation:
    def test_message(self):
        assert build_confirmation_message(TOMORROW, 630, 45, "Rui", TODAY) == (
            "Marcação confirmada para Rui: amanhã às 10h30 (45 min)."
        )


class TestSchedulingInstructions:
    def test_instructions_include_command_format(self):
        assert BOOKING_COMMAND_FORMAT in SCHEDULING_INSTRUCTIONS

    def test_documented_format_matches_parser(self):
        example = (
            BOOKING_COMMAND_FORMAT.replace("YYYY-MM-DD", "2025-03-18")
            .replace("HH:MM", "10:00")
            .replace("DURAÇÃO", "30")
        )
        command = parse_booking_command(example)
        assert command is not None
        assert command.client == "NOME DO CLIENTE"
