"""Collision-level acceptance and centrality estimator choice."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from .config import EventSelection
from .models import Collision, SelectionBit

# Stage labels in evaluation order; the last two depend on the collision system.
BASE_STAGES: tuple[str, ...] = (
    "All collisions",
    "sel8 cut",
    "kIsTriggerTVX",
    "kNoITSROFrameBorder",
    "kNoTimeFrameBorder",
    "posZ cut",
    "kIsVertexITSTPC",
    "kIsGoodZvtxFT0vsPV",
    "kIsVertexTOFmatched",
    "kIsVertexTRDmatched",
    "kNoSameBunchPileup",
    "kNoCollInTimeRangeStd",
    "kNoCollInTimeRangeStrict",
    "kNoCollInTimeRangeNarrow",
    "kNoCollInTimeRangeVzDep",
    "kNoCollInRofStd",
    "kNoCollInRofStrict",
)
PP_STAGES: tuple[str, ...] = ("INEL>0", "INEL>1")
PBPB_STAGES: tuple[str, ...] = ("Below min occup.", "Above max occup.")


@dataclass
class EventSelector:
    """Apply the configured collision selection.

    `do_pp_analysis` switches the last two stages between the INEL>0/INEL>1
    requirements (pp) and the occupancy window (Pb-Pb).
    """

    selection: EventSelection = field(default_factory=EventSelection)
    do_pp_analysis: bool = True

    @property
    def stages(self) -> tuple[str, ...]:
        return BASE_STAGES + (PP_STAGES if self.do_pp_analysis else PBPB_STAGES)

    def passed_stages(self, collision: Collision) -> list[str]:
        """Labels of the consecutive stages passed by `collision`."""
        passed: list[str] = []
        for label, ok in zip(self.stages, self._checks(collision)):
            if not ok:
                break
            passed.append(label)
        return passed

    def is_accepted(self, collision: Collision) -> bool:
        return all(self._checks(collision))

    def centrality(self, collision: Collision) -> float:
        """FT0M centrality in pp, FT0C otherwise."""
        return collision.cent_ft0m if self.do_pp_analysis else collision.cent_ft0c

    def occupancy(self, collision: Collision) -> float:
        if self.selection.use_ft0c_based_occupancy:
            return collision.ft0c_occupancy
        return collision.track_occupancy

    def _checks(self, collision: Collision):
        sel = self.selection
        yield True
        yield not sel.require_sel8 or collision.sel8
        yield _bit_ok(sel.require_trigger_tvx, collision, SelectionBit.IS_TRIGGER_TVX)
        yield _bit_ok(sel.reject_its_rof_border, collision, SelectionBit.NO_ITS_ROF_BORDER)
        yield _bit_ok(sel.reject_tf_border, collision, SelectionBit.NO_TF_BORDER)
        yield abs(collision.pos_z) <= sel.max_z_vtx_position
        yield _bit_ok(sel.require_is_vertex_its_tpc, collision, SelectionBit.IS_VERTEX_ITS_TPC)
        yield _bit_ok(sel.require_is_good_zvtx_ft0_vs_pv, collision, SelectionBit.IS_GOOD_ZVTX_FT0_VS_PV)
        yield _bit_ok(sel.require_is_vertex_tof_matched, collision, SelectionBit.IS_VERTEX_TOF_MATCHED)
        yield _bit_ok(sel.require_is_vertex_trd_matched, collision, SelectionBit.IS_VERTEX_TRD_MATCHED)
        yield _bit_ok(sel.reject_same_bunch_pileup, collision, SelectionBit.NO_SAME_BUNCH_PILEUP)
        yield _bit_ok(sel.require_no_coll_in_time_range_std, collision, SelectionBit.NO_COLL_IN_TIME_RANGE_STANDARD)
        yield _bit_ok(sel.require_no_coll_in_time_range_strict, collision, SelectionBit.NO_COLL_IN_TIME_RANGE_STRICT)
        yield _bit_ok(sel.require_no_coll_in_time_range_narrow, collision, SelectionBit.NO_COLL_IN_TIME_RANGE_NARROW)
        yield _bit_ok(sel.require_no_coll_in_time_range_vz_dep, collision, SelectionBit.NO_COLL_IN_TIME_RANGE_VZ_DEPENDENT)
        yield _bit_ok(sel.require_no_coll_in_rof_std, collision, SelectionBit.NO_COLL_IN_ROF_STANDARD)
        yield _bit_ok(sel.require_no_coll_in_rof_strict, collision, SelectionBit.NO_COLL_IN_ROF_STRICT)
        if self.do_pp_analysis:
            yield not sel.require_inel0 or collision.mult_ntracks_pv_eta1 >= 1
            yield not sel.require_inel1 or collision.mult_ntracks_pv_eta1 >= 2
        else:
            occupancy = self.occupancy(collision)
            # A negative bound disables that side of the window.
            yield sel.min_occupancy < 0 or occupancy >= sel.min_occupancy
            yield sel.max_occupancy < 0 or occupancy <= sel.max_occupancy


@dataclass
class EventCounter:
    """Running count of collisions reaching each selection stage."""

    stages: tuple[str, ...]
    counts: Counter = field(default_factory=Counter)

    def record(self, passed: list[str]) -> None:
        self.counts.update(passed)

    def as_rows(self) -> list[tuple[str, int]]:
        return [(label, self.counts.get(label, 0)) for label in self.stages]


def _bit_ok(required: bool, collision: Collision, bit: SelectionBit) -> bool:
    return not required or collision.has_bit(bit)
