"""
Tests for services.variant_resolver: weighted selection at scan time.
"""

import random
from collections import Counter
from types import SimpleNamespace

import pytest

from echo_api.core.exceptions import NoActiveQuestionnaireError, NotFoundError
from echo_api.crud import assignment as assignment_crud
from echo_api.crud import questionnaire as questionnaire_crud
from echo_api.services.assignment_manager import AssignmentManager
from echo_api.services.variant_resolver import VariantResolver, weighted_choice


class FixedRandom:
    """rng stub returning a fixed draw in [0, 1)."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def _variant(name, weight):
    return SimpleNamespace(id=name, weight=weight)


@pytest.fixture
def ab_table(db, make_restaurant, make_table, make_questionnaire):
    """A table carrying two active 50/50 variants via propagation."""
    restaurant = make_restaurant()
    t1 = make_table(restaurant, "1")
    t2 = make_table(restaurant, "2")
    q1 = make_questionnaire(title="Variant A")
    q2 = make_questionnaire(title="Variant B")
    manager = AssignmentManager(db)
    manager.assign_single(t1.scan_code.id, q1.id, 50)
    manager.assign_single(t2.scan_code.id, q2.id, 50)
    table = make_table(restaurant, "3")
    return SimpleNamespace(table=table, q1=q1, q2=q2)


class TestWeightedChoice:

    def test_empty_returns_none(self):
        assert weighted_choice([], random.Random(1)) is None

    def test_single_candidate_always_chosen(self):
        only = _variant("a", 5)
        assert weighted_choice([only], FixedRandom(0.999)) is only

    def test_zero_weight_never_drawn(self):
        zero = _variant("zero", 0)
        live = _variant("live", 10)
        rng = random.Random(3)
        assert all(weighted_choice([zero, live], rng) is live for _ in range(200))

    def test_all_zero_returns_none(self):
        assert weighted_choice([_variant("a", 0), _variant("b", 0)], random.Random(1)) is None

    @pytest.mark.parametrize("draw, expected", [
        (0.0, "a"),
        (0.29, "a"),
        (0.30, "b"),
        (0.99, "b"),
    ])
    def test_cumulative_boundaries(self, draw, expected):
        candidates = [_variant("a", 30), _variant("b", 70)]
        assert weighted_choice(candidates, FixedRandom(draw)).id == expected

    def test_distribution_matches_weights(self):
        candidates = [_variant("a", 50), _variant("b", 50)]
        rng = random.Random(42)
        counts = Counter(weighted_choice(candidates, rng).id for _ in range(10_000))
        assert 4_700 <= counts["a"] <= 5_300

    def test_uneven_distribution(self):
        candidates = [_variant("a", 20), _variant("b", 80)]
        rng = random.Random(7)
        counts = Counter(weighted_choice(candidates, rng).id for _ in range(10_000))
        assert 1_700 <= counts["a"] <= 2_300


class TestResolveForScan:

    def test_returns_single_assignment(self, db, make_restaurant, make_table, make_questionnaire):
        table = make_table(make_restaurant())
        questionnaire = make_questionnaire()
        assignment = AssignmentManager(db).assign_single(table.scan_code.id, questionnaire.id)

        resolved = VariantResolver(db).resolve_for_scan(table.scan_code.id)

        assert resolved.assignment_id == assignment.id
        assert resolved.questionnaire.id == questionnaire.id
        assert resolved.table_id == table.table.id
        assert resolved.questionnaire_version == 1
        assert resolved.question_ids == ["q1", "q2"]

    def test_ab_split_close_to_even(self, db, ab_table):
        resolver = VariantResolver(db, rng=random.Random(2024))
        counts = Counter(
            resolver.resolve_for_scan(ab_table.table.scan_code.id).questionnaire.id
            for _ in range(2_000)
        )
        assert 900 <= counts[ab_table.q1.id] <= 1_100
        assert counts[ab_table.q1.id] + counts[ab_table.q2.id] == 2_000

    def test_seeded_resolvers_agree(self, db, ab_table):
        scan_code_id = ab_table.table.scan_code.id
        first = VariantResolver(db, rng=random.Random(11))
        second = VariantResolver(db, rng=random.Random(11))
        picks_a = [first.resolve_for_scan(scan_code_id).assignment_id for _ in range(50)]
        picks_b = [second.resolve_for_scan(scan_code_id).assignment_id for _ in range(50)]
        assert picks_a == picks_b

    def test_inactive_questionnaire_never_shown(self, db, ab_table):
        questionnaire_crud.update_questionnaire(db, ab_table.q2.id, is_active=False)
        resolver = VariantResolver(db, rng=random.Random(5))
        for _ in range(100):
            assert resolver.resolve_for_scan(ab_table.table.scan_code.id).questionnaire.id == ab_table.q1.id

    def test_only_inactive_questionnaire_raises(self, db, make_restaurant, make_table, make_questionnaire):
        table = make_table(make_restaurant())
        questionnaire = make_questionnaire(is_active=False)
        AssignmentManager(db).assign_single(table.scan_code.id, questionnaire.id)

        with pytest.raises(NoActiveQuestionnaireError):
            VariantResolver(db).resolve_for_scan(table.scan_code.id)

    def test_deactivated_assignment_raises(self, db, make_restaurant, make_table, make_questionnaire):
        table = make_table(make_restaurant())
        manager = AssignmentManager(db)
        assignment = manager.assign_single(table.scan_code.id, make_questionnaire().id)
        manager.deactivate(assignment.id)

        with pytest.raises(NoActiveQuestionnaireError):
            VariantResolver(db).resolve_for_scan(table.scan_code.id)

    def test_zero_weight_assignment_not_drawn(self, db, ab_table):
        candidates = assignment_crud.get_resolvable_assignments(db, ab_table.table.scan_code.id)
        muted = next(a for a in candidates if a.questionnaire_id == ab_table.q2.id)
        muted.weight = 0
        db.commit()

        resolver = VariantResolver(db, rng=random.Random(9))
        for _ in range(100):
            assert resolver.resolve_for_scan(ab_table.table.scan_code.id).questionnaire.id == ab_table.q1.id

    def test_no_assignments_raises(self, db, make_restaurant, make_table):
        table = make_table(make_restaurant())
        with pytest.raises(NoActiveQuestionnaireError) as exc_info:
            VariantResolver(db).resolve_for_scan(table.scan_code.id)
        assert exc_info.value.scan_code_id == table.scan_code.id

    def test_unknown_scan_code(self, db):
        with pytest.raises(NotFoundError):
            VariantResolver(db).resolve_for_scan("missing")


class TestListCandidates:

    def test_probabilities_follow_weights(self, db, ab_table):
        candidates = VariantResolver(db).list_candidates(ab_table.table.scan_code.id)
        assert len(candidates) == 2
        assert all(c["probability"] == 0.5 for c in candidates)
