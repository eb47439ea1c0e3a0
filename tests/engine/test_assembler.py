from datetime import datetime, timezone

from conftest import make_task
from points_engine.aggregator import TEAM_FIXED, TEAM_FREELANCE, aggregate_points, finalize_editors
from points_engine.assembler import (
    apply_queue_override,
    assemble_report,
    build_bonus,
    productivity_bonus,
    rank_fixed_roster,
    zero_bonus,
)


def _editor(eid, name, team, points, **extra):
    e = {"id": eid, "name": name, "team": team, "points": points, "rank": None, "queue_tasks": 0, "total_tasks": 0}
    e.update(extra)
    return e


class TestQueueOverride:
    def test_fixed_name_flips_on_queue_majority(self, cfg):
        tasks = [
            make_task("a", weight=1, editors=[(1, "alice")], done="2026-02-03", source_list="freelas"),
            make_task("b", weight=1, editors=[(1, "alice")], done="2026-02-04", source_list="fixed"),
        ]
        editors = aggregate_points(tasks, cfg)["editors"]
        assert editors["1"]["team"] == TEAM_FIXED
        assert apply_queue_override(editors, cfg) == ["1"]
        assert editors["1"]["team"] == TEAM_FREELANCE

    def test_minority_queue_keeps_team(self, cfg):
        tasks = [
            make_task("a", weight=1, editors=[(1, "alice")], done="2026-02-03", source_list="freelas"),
            make_task("b", weight=1, editors=[(1, "alice")], done="2026-02-04", source_list="fixed"),
            make_task("c", weight=1, editors=[(1, "alice")], done="2026-02-05", source_list="fixed"),
        ]
        editors = aggregate_points(tasks, cfg)["editors"]
        assert apply_queue_override(editors, cfg) == []
        assert editors["1"]["team"] == TEAM_FIXED


class TestRanking:
    def test_only_fixed_ranked_and_ties_stable(self):
        editors = {
            "1": _editor("1", "alice", "fixed", 10.0),
            "2": _editor("2", "fred", "freelance", 50.0),
            "3": _editor("3", "bruno", "fixed", 12.0),
            "4": _editor("4", "carla", "fixed", 10.0),
            "5": _editor("5", "ian", "ai-assisted", 30.0),
        }
        fixed, others = rank_fixed_roster(editors)
        assert [(e["name"], e["rank"]) for e in fixed] == [("bruno", 1), ("alice", 2), ("carla", 3)]
        assert [e["name"] for e in others] == ["fred", "ian"]
        assert all(e["rank"] is None for e in others)

    def test_productivity_bonus_by_rank(self, cfg):
        assert productivity_bonus(1, cfg) == 500
        assert productivity_bonus(2, cfg) == 250
        assert productivity_bonus(3, cfg) == 0
        assert productivity_bonus(None, cfg) == 0


class TestBuildBonus:
    def test_fixed_breakdown(self, cfg):
        editor = _editor("1", "alice", "fixed", 20.0, rank=1)
        bonus = build_bonus(
            editor,
            cfg,
            streaks={"1": {"count": 2, "total_bonus": 200}},
            no_rework={"1": {"qualifying": 3, "bonus": 30}},
            weekend={"1": {"bonus": 35, "task_count": 1}},
            freelance={},
        )
        assert bonus["type"] == "fixed"
        assert bonus["total"] == 500 + 200 + 30 + 35
        assert bonus["streak_days"] == 2
        assert bonus["no_rework_count"] == 3
        assert bonus["freelance_payout"] == 0

    def test_freelance_only_payout(self, cfg):
        editor = _editor("2", "fred", "freelance", 5.0)
        bonus = build_bonus(
            editor, cfg, streaks={"2": {"total_bonus": 100}}, no_rework={}, weekend={"2": {"bonus": 35}},
            freelance={"2": {"payout": 140}},
        )
        assert bonus["type"] == "freelance"
        assert bonus["total"] == 140
        assert bonus["streak"] == 0
        assert bonus["weekend"] == 0

    def test_ai_assisted_zero(self, cfg):
        bonus = build_bonus(_editor("5", "ian", "ai-assisted", 30.0), cfg, {}, {}, {}, {})
        assert bonus == zero_bonus()


class TestAssembleReport:
    def test_report_shape(self, cfg):
        tasks = [
            make_task("a", weight=4, editors=[(1, "alice"), (2, "bruno")], done="2026-02-10"),
            make_task("b", weight=2, editors=[(5, "fred")], done="2026-02-11", source_list="freelas"),
        ]
        counts = aggregate_points(tasks, cfg)
        editors = finalize_editors(counts["editors"])
        generated = datetime(2026, 3, 1, tzinfo=timezone.utc)
        report = assemble_report(
            editors,
            counts["unmatched"],
            cfg,
            month="2026-02",
            streaks={},
            no_rework={"details": {}, "skipped": True, "checked": 0},
            weekend={},
            freelance={"5": {"payout": 70.0}},
            total_tasks=2,
            lists=["fixed", "freelas"],
            generated_at=generated,
        )

        meta = report["metadata"]
        assert meta["month"] == "2026-02"
        assert meta["generated_at"] == generated.isoformat()
        assert meta["schema_version"] == cfg["schema_version"]
        assert meta["no_rework_skipped"] is True
        assert meta["lists"] == ["fixed", "freelas"]

        assert [e["name"] for e in report["editors"]] == ["alice", "bruno", "fred"]
        alice = report["editors"][0]
        assert alice["totals"] == {"raw_count": 1, "points": 2.0}
        assert alice["daily"] == {"2026-02-10": 2.0}
        assert alice["rank"] == 1
        assert alice["bonus"]["productivity"] == 500

        summary = report["summary"]
        assert summary["total_points"] == 6.0
        assert summary["total_editors"] == 3
        assert summary["total_bonus"] == 500 + 250 + 70
        assert summary["teams"] == {"fixed": 2, "ai-assisted": 0, "freelance": 1}
        assert [r["name"] for r in summary["ranking"]] == ["alice", "bruno"]
        assert report["unmatched"] == []
