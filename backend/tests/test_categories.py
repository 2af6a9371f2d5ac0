import pytest

from wordparty.errors import AuthorizationError, PreconditionError, ValidationError
from wordparty.game import categories, lobby
from wordparty.game.categories import normalize_answer, score_answers
from wordparty.game.words import ARABIC_LETTERS


CATS = ["boy", "animal", "country"]


def start(ctx, room, letter="ب", rounds=3, cats=CATS):
    categories.select_letter(ctx.store, room.code, room.host_id, letter)
    return categories.start_game(ctx.store, room.code, room.host_id, rounds, list(cats))


def by_name(payload):
    return {p["name"]: p for p in payload["players"]}


def test_normalize_answer_ignores_case_diacritics_and_spacing():
    assert normalize_answer("  Café   Au Lait ") == "cafe au lait"
    assert normalize_answer("بَطّة") == normalize_answer("بطة")
    assert normalize_answer(None) == ""


def test_score_answers_rules():
    scores = score_answers(
        {
            "a": {"boy": "Bassam", "animal": "bear", "country": "Egypt"},
            "b": {"boy": " bassam ", "animal": "", "country": "Brazil"},
        },
        CATS,
        "B",
    )
    assert scores["a"] == {"boy": 5, "animal": 10, "country": 0}
    assert scores["b"] == {"boy": 5, "animal": 0, "country": 10}


def test_scenario_two_players_share_an_answer(ctx, seat):
    room = seat("categories", "Host", "A", "B")
    fx = start(ctx, room)
    started = fx.events("round-started")[0]
    assert started.to == room.code
    assert started.payload["letter"] == "ب"
    assert started.payload["categories"] == CATS

    assert categories.submit_answers(
        ctx.store, room.code, "sid-A", {"boy": "بسام", "animal": "بطة", "country": "-"}
    ).events("scoring-phase") == []
    categories.submit_answers(ctx.store, room.code, "sid-B", {"boy": "بسام", "animal": "-", "country": "-"})
    fx = categories.finish_round(ctx.store, room.code, "sid-Host", {})

    assert fx.events("round-ended")[0].payload["finisher"] == "Host"
    scoring = by_name(fx.events("scoring-phase")[0].payload)
    assert scoring["A"]["scores"] == {"boy": 5, "animal": 10, "country": 0}
    assert scoring["A"]["roundScore"] == 15
    assert scoring["B"]["scores"] == {"boy": 5, "animal": 0, "country": 0}
    assert scoring["B"]["roundScore"] == 5
    assert scoring["Host"]["roundScore"] == 0
    for p in scoring.values():
        assert sum(p["scores"].values()) == p["roundScore"]


def test_completion_detected_whatever_the_arrival_order(ctx, seat):
    room = seat("categories", "Host", "A", "B")
    start(ctx, room)
    categories.finish_round(ctx.store, room.code, "sid-B", {"boy": "بدر"})
    assert not room.scores_ready
    categories.submit_answers(ctx.store, room.code, "sid-Host", {})
    fx = categories.submit_answers(ctx.store, room.code, "sid-A", {"boy": "بدر"})
    assert room.scores_ready
    assert by_name(fx.events("scoring-phase")[0].payload)["A"]["scores"]["boy"] == 5


def test_scenario_disconnect_mid_round_is_not_waited_for(ctx, seat):
    room = seat("categories", "Host", "A", "B")
    start(ctx, room)
    categories.submit_answers(ctx.store, room.code, "sid-B", {"boy": "بسام"})

    fx = lobby.handle_disconnect(ctx, "sid-B")
    assert fx.events("scoring-phase") == []
    assert fx.events("player-left")[0].payload["playerName"] == "B"

    categories.submit_answers(ctx.store, room.code, "sid-A", {"boy": "بسام"})
    fx = categories.finish_round(ctx.store, room.code, "sid-Host", {})
    scoring = by_name(fx.events("scoring-phase")[0].payload)
    # B's identical answer no longer counts as a duplicate.
    assert scoring["A"]["scores"]["boy"] == 10
    assert scoring["B"]["roundScore"] == 0


def test_last_missing_player_disconnecting_completes_round(ctx, seat):
    room = seat("categories", "Host", "A", "B")
    start(ctx, room)
    categories.finish_round(ctx.store, room.code, "sid-Host", {})
    categories.submit_answers(ctx.store, room.code, "sid-A", {})

    fx = lobby.handle_disconnect(ctx, "sid-B")
    assert len(fx.events("scoring-phase")) == 1
    assert room.scores_ready


def test_start_game_validation(ctx, seat):
    room = seat("categories", "Host", "A")
    with pytest.raises(AuthorizationError):
        categories.start_game(ctx.store, room.code, "sid-A")
    with pytest.raises(ValidationError) as exc:
        categories.start_game(ctx.store, room.code, "sid-Host", 21)
    assert exc.value.code == "invalid_rounds"
    with pytest.raises(ValidationError) as exc:
        categories.start_game(ctx.store, room.code, "sid-Host", 5, ["boy", "boy", "animal"])
    assert exc.value.code == "invalid_categories"
    assert not room.game_active

    categories.start_game(ctx.store, room.code, "sid-Host")
    assert room.categories == ["boy", "girl", "animal", "plant", "object", "country"]
    assert room.total_rounds == 5
    with pytest.raises(PreconditionError):
        categories.start_game(ctx.store, room.code, "sid-Host")


def test_select_letter_rules(ctx, seat):
    room = seat("categories", "Host", "A")
    with pytest.raises(AuthorizationError):
        categories.select_letter(ctx.store, room.code, "sid-A", "ب")
    with pytest.raises(ValidationError):
        categories.select_letter(ctx.store, room.code, "sid-Host", "Z")

    fx = categories.select_letter(ctx.store, room.code, "sid-Host", "ت")
    assert fx.events("letter-selected")[0].payload == {"letter": "ت"}

    categories.start_game(ctx.store, room.code, "sid-Host", 2, CATS)
    assert room.current_letter == "ت"
    with pytest.raises(PreconditionError):
        categories.select_letter(ctx.store, room.code, "sid-Host", "ب")


def test_host_override_is_final_for_its_cell(ctx, seat):
    room = seat("categories", "Host", "A")
    start(ctx, room)
    categories.submit_answers(ctx.store, room.code, "sid-A", {"boy": "بسام"})

    with pytest.raises(PreconditionError):
        categories.update_single_score(ctx.store, room.code, "sid-Host", "sid-A", "boy", 0)

    categories.finish_round(ctx.store, room.code, "sid-Host", {"boy": "بسام"})
    assert room.players[1].scores["boy"] == 5

    fx = categories.update_single_score(ctx.store, room.code, "sid-Host", "sid-A", "boy", 10)
    assert fx.events("score-updated")[0].payload == {
        "playerId": "sid-A",
        "category": "boy",
        "score": 10,
        "roundScore": 10,
    }
    # The host's copy is not re-downgraded as a duplicate.
    assert room.players[0].scores["boy"] == 5

    with pytest.raises(ValidationError):
        categories.update_single_score(ctx.store, room.code, "sid-Host", "sid-A", "boy", 7)
    with pytest.raises(ValidationError):
        categories.update_single_score(ctx.store, room.code, "sid-Host", "sid-A", "plant", 5)
    with pytest.raises(AuthorizationError):
        categories.update_single_score(ctx.store, room.code, "sid-A", "sid-A", "boy", 10)


def test_advance_accumulates_totals_and_ends_game(ctx, seat):
    room = seat("categories", "Host", "A")
    start(ctx, room, rounds=2)

    for expected_round in (1, 2):
        assert room.current_round == expected_round
        categories.submit_answers(ctx.store, room.code, "sid-A", {"boy": room.current_letter + "x"})
        categories.finish_round(ctx.store, room.code, "sid-Host", {})
        fx = categories.update_scores_and_next(ctx.store, room.code, "sid-Host")

    over = fx.events("game-over")[0].payload["players"]
    assert [p["name"] for p in over] == ["A", "Host"]
    assert over[0]["totalScore"] == 20
    assert not room.game_active
    assert room.round_state == "idle"
    assert len(room.used_letters) == 2


def test_submissions_rejected_after_scores_are_ready(ctx, seat):
    room = seat("categories", "Host", "A")
    start(ctx, room)
    categories.submit_answers(ctx.store, room.code, "sid-A", {})
    categories.finish_round(ctx.store, room.code, "sid-Host", {})
    with pytest.raises(PreconditionError):
        categories.submit_answers(ctx.store, room.code, "sid-A", {})
    with pytest.raises(PreconditionError):
        categories.finish_round(ctx.store, room.code, "sid-A", {})


def test_letters_reset_when_alphabet_is_exhausted(ctx, seat):
    room = seat("categories", "Host")
    categories.start_game(ctx.store, room.code, "sid-Host", 1, CATS)
    room.used_letters = list(ARABIC_LETTERS)
    room.current_round = 0
    room.total_rounds = 2
    categories.finish_round(ctx.store, room.code, "sid-Host", {})
    categories.update_scores_and_next(ctx.store, room.code, "sid-Host")

    assert room.round_state == "playing"
    assert room.used_letters == [room.current_letter]


def test_joiner_during_scoring_does_not_block(ctx, seat):
    room = seat("categories", "Host", "A")
    start(ctx, room)
    categories.finish_round(ctx.store, room.code, "sid-Host", {})
    lobby.join_room(ctx, "categories", room.code, "sid-Late", "Late")
    late = room.players[-1]
    assert late.has_submitted

    fx = categories.submit_answers(ctx.store, room.code, "sid-A", {})
    assert len(fx.events("scoring-phase")) == 1


def test_play_again_resets_room(ctx, seat):
    room = seat("categories", "Host", "A")
    start(ctx, room, rounds=1)
    categories.submit_answers(ctx.store, room.code, "sid-A", {"boy": "بسام"})
    categories.finish_round(ctx.store, room.code, "sid-Host", {})
    categories.update_scores_and_next(ctx.store, room.code, "sid-Host")

    with pytest.raises(AuthorizationError):
        categories.play_again(ctx.store, room.code, "sid-A")
    fx = categories.play_again(ctx.store, room.code, "sid-Host")
    reset = fx.events("reset-game")[0].payload
    assert reset["usedLetters"] == []
    assert all(p["totalScore"] == 0 for p in reset["players"])
    assert room.round_state == "idle"
    assert room.current_letter is None
