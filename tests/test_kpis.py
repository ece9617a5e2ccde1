"""Tests for yard KPI extraction."""

import json

import pytest

from yard_sim.analysis.kpis import YardKPIs, compute_yard_kpis
from yard_sim.simulation.engine import YardEngine

from conftest import FAIL, PASS, FixedRandom


class TestComputeKPIs:
    def test_empty_yard(self, passing_engine):
        kpis = compute_yard_kpis(passing_engine)
        assert kpis.total_trains == 0
        assert kpis.inspection_bays == (0, 4)
        assert kpis.workshop_lines == (0, 4)
        assert kpis.siding_slots == (0, 24)
        assert kpis.inspection_pass_rate is None
        assert kpis.mean_time_to_park is None

    def test_after_happy_path(self, passing_engine):
        passing_engine.create_train()
        passing_engine.create_train(priority=True)
        passing_engine.run()

        kpis = compute_yard_kpis(passing_engine)
        assert kpis.time == 303
        assert kpis.total_trains == 2
        assert kpis.by_status["parked"] == 1
        assert kpis.by_status["moving"] == 1
        assert kpis.priority_trains == 1
        assert kpis.siding_slots == (1, 24)
        assert kpis.inspections_passed == 2
        assert kpis.inspection_pass_rate == 1.0
        assert kpis.trains_parked_once == 1
        assert kpis.mean_time_to_park == 303
        assert kpis.total_events == len(passing_engine.event_log)

    def test_time_to_park_counts_first_parking_only(self, passing_engine):
        train_id = passing_engine.create_train()
        passing_engine.run()
        passing_engine.run(until=400)
        passing_engine.assign_to_siding(train_id, "S1a")

        kpis = compute_yard_kpis(passing_engine)
        assert kpis.trains_parked_once == 1
        assert kpis.max_time_to_park == 303

    def test_repairs_counted(self, failing_engine):
        failing_engine.create_train(failures=["brake"])
        failing_engine.run()

        kpis = compute_yard_kpis(failing_engine)
        assert kpis.inspections_failed == 1
        assert kpis.repairs_completed == 1
        assert kpis.trains_with_failures == 0
        assert kpis.mean_time_to_park == 314

    def test_from_snapshot(self, small_yard, config):
        engine = YardEngine(small_yard, config, rng=FixedRandom(PASS))
        for _ in range(3):
            engine.create_train()
        engine.run(until=10)

        kpis = compute_yard_kpis(engine.snapshot())
        assert kpis.by_status["inspection"] == 1
        assert kpis.by_status["queued"] == 2
        assert kpis.inspection_bays == (1, 1)


class TestYardKPIs:
    def test_to_dict_is_json_serialisable(self, small_yard, config):
        engine = YardEngine(small_yard, config, rng=FixedRandom(FAIL))
        engine.create_train()
        engine.run()

        payload = compute_yard_kpis(engine).to_dict()
        json.dumps(payload)
        assert payload["inspection_pass_rate"] == 0.0
        assert payload["workshop_lines_total"] == 2
        assert isinstance(payload["mean_time_to_park_s"], float)

    def test_summary(self):
        kpis = YardKPIs(time=60, total_trains=3, by_status={"parked": 2, "queued": 1, "moving": 0})
        text = kpis.summary()
        assert "t=60s" in text
        assert "parked" in text
        assert "moving" not in text
        assert "pass rate -" in text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
