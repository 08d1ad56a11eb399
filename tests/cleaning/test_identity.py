# SPDX-License-Identifier: MIT
"""Tests for patient identity grouping and visit numbering."""

import random
from datetime import date

import pytest

from admissions.errors import IdentifierAlreadyAssignedError
from admissions.identity import (
    anchor_rows,
    assign_patient_ids,
    assign_visit_ids,
    count_anchor_divergence,
    distinct_triples,
    patient_ids,
    window_components,
)


def triples_for(name, blood_type, ages):
    return [(name, blood_type, age) for age in ages]


class TestAnchorConstruction:
    """Test the two-pass (row number, window minimum) construction."""

    def test_triples_sorted_and_distinct(self, make_record):
        records = [make_record(name="Zed A", age=5), make_record(name="Amy B", age=9), make_record(name="Amy B", age=9)]
        assert distinct_triples(records) == [("Amy B", "B-", 9), ("Zed A", "B-", 5)]

    def test_anchor_is_youngest_triple_in_window(self):
        triples = triples_for("Alice Young", "O+", [30, 34, 41])
        anchors = anchor_rows(triples)
        assert anchors[("Alice Young", "O+", 30)] == 0
        assert anchors[("Alice Young", "O+", 34)] == 0
        # 41's window is 35..47 which only contains itself
        assert anchors[("Alice Young", "O+", 41)] == 2

    def test_alice_young_example(self):
        """30 and 34 share a window; 41 is more than 6 years from both."""
        ids = patient_ids(triples_for("Alice Young", "O+", [30, 34, 41]))
        assert ids[("Alice Young", "O+", 30)] == ids[("Alice Young", "O+", 34)]
        assert ids[("Alice Young", "O+", 41)] != ids[("Alice Young", "O+", 30)]
        assert sorted(set(ids.values())) == [1, 2]

    def test_window_boundary_is_inclusive(self):
        ids = patient_ids(triples_for("Ann Lee", "A+", [20, 26]))
        assert len(set(ids.values())) == 1

        ids = patient_ids(triples_for("Ann Lee", "A+", [20, 27]))
        assert len(set(ids.values())) == 2

    def test_blood_type_and_name_separate_patients(self):
        triples = sorted([("Ann Lee", "A+", 30), ("Ann Lee", "B+", 30), ("Ann Leigh", "A+", 30)])
        assert sorted(patient_ids(triples).values()) == [1, 2, 3]

    def test_chained_windows_are_not_merged(self):
        """20-26 and 26-30 are each within the window but 30 anchors on 26, not 20."""
        ids = patient_ids(triples_for("Ann Lee", "A+", [20, 26, 30]))
        assert ids[("Ann Lee", "A+", 20)] == ids[("Ann Lee", "A+", 26)] == 1
        assert ids[("Ann Lee", "A+", 30)] == 2

    def test_dense_ranks_follow_sorted_order(self):
        triples = sorted(
            triples_for("Bob Ray", "O-", [10, 50])
            + triples_for("Amy Ng", "AB+", [40, 42])
        )
        ids = patient_ids(triples)
        assert ids[("Amy Ng", "AB+", 40)] == ids[("Amy Ng", "AB+", 42)] == 1
        assert ids[("Bob Ray", "O-", 10)] == 2
        assert ids[("Bob Ray", "O-", 50)] == 3

    def test_custom_tolerance(self):
        ids = patient_ids(triples_for("Ann Lee", "A+", [20, 26]), tolerance=2)
        assert len(set(ids.values())) == 2


class TestAnchorDivergence:
    """Diagnostic comparison against transitive window grouping."""

    def test_no_divergence_when_windows_do_not_chain(self):
        assert count_anchor_divergence(triples_for("Alice Young", "O+", [30, 34, 41])) == 0

    def test_chain_is_reported(self):
        triples = triples_for("Ann Lee", "A+", [20, 26, 30])
        components = window_components(triples)
        assert len(set(components.values())) == 1
        assert count_anchor_divergence(triples) == 3

    def test_divergence_never_changes_ids(self):
        triples = triples_for("Ann Lee", "A+", [20, 26, 30])
        before = patient_ids(triples)
        count_anchor_divergence(triples)
        assert patient_ids(triples) == before

    def test_anchor_groups_never_span_components(self):
        """Every anchor group sits inside one transitive component."""
        rng = random.Random(7)
        triples = sorted({("P", rng.choice(["A+", "O-"]), rng.randint(0, 90)) for _ in range(60)})
        ids = patient_ids(triples)
        components = window_components(triples)
        component_of_id = {}
        for triple, pid in ids.items():
            assert component_of_id.setdefault(pid, components[triple]) == components[triple]


class TestAssignPatientIds:
    """Test applying patient ids to records."""

    def test_every_record_gets_an_id(self, make_record):
        records = [make_record(age=30), make_record(age=34, hospital="X"), make_record(age=41, hospital="Y")]
        assign_patient_ids(records)
        assert [r.patient_id for r in records] == [1, 1, 2]

    def test_independent_of_input_order(self, make_record):
        people = [("Amy Ng", 40), ("Bob Ray", 10), ("Amy Ng", 44), ("Bob Ray", 50), ("Cy Do", 3)]
        forward = [make_record(name=n, age=a) for n, a in people]
        backward = [make_record(name=n, age=a) for n, a in reversed(people)]
        assign_patient_ids(forward)
        assign_patient_ids(backward)
        assert {(r.name, r.age, r.patient_id) for r in forward} == {(r.name, r.age, r.patient_id) for r in backward}

    def test_ids_are_write_once(self, make_record):
        records = [make_record()]
        assign_patient_ids(records)
        with pytest.raises(IdentifierAlreadyAssignedError):
            assign_patient_ids(records)

    def test_empty(self):
        assert assign_patient_ids([]) == {}


class TestAssignVisitIds:
    """Test sequential visit numbering."""

    def test_ordered_by_admission_date(self, make_record):
        records = [
            make_record(date_of_admission=date(2021, 5, 1)),
            make_record(date_of_admission=date(2020, 1, 1)),
            make_record(date_of_admission=date(2022, 3, 9)),
        ]
        assign_visit_ids(records)
        assert [r.visit_id for r in records] == [2, 1, 3]

    def test_same_day_ties_follow_input_order(self, make_record):
        records = [make_record(name="Bo Z"), make_record(name="Al A"), make_record(name="Cy C")]
        assign_visit_ids(records)
        assert [r.visit_id for r in records] == [1, 2, 3]

    def test_contiguous_permutation(self, make_record):
        rng = random.Random(3)
        records = [
            make_record(name=f"P {i}", date_of_admission=date(2020, rng.randint(1, 12), rng.randint(1, 28)))
            for i in range(40)
        ]
        assign_visit_ids(records)
        assert sorted(r.visit_id for r in records) == list(range(1, 41))
        by_date = sorted(records, key=lambda r: r.visit_id)
        dates = [r.date_of_admission for r in by_date]
        assert dates == sorted(dates)

    def test_shared_visit_key_shares_id(self, make_record):
        """Same name, age, blood type and day is one visit."""
        records = [
            make_record(hospital="H1"),
            make_record(name="Other One", date_of_admission=date(2024, 1, 1)),
            make_record(hospital="H2"),
        ]
        assign_visit_ids(records)
        assert records[0].visit_id == records[2].visit_id == 2
        assert records[1].visit_id == 1

    def test_ids_are_write_once(self, make_record):
        records = [make_record()]
        assign_visit_ids(records)
        with pytest.raises(IdentifierAlreadyAssignedError):
            assign_visit_ids(records)
