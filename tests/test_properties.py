from hypothesis import given
from hypothesis import strategies as st

from gitsync import daemon, ops
from gitsync.constants import GC_CYCLE_LIMIT

changes_strategy = st.lists(st.booleans(), max_size=200)


@given(changes=changes_strategy)
def test_counter_stays_in_range_and_forces_every_eleventh_change(
    changes: list[bool],
) -> None:
    """
    Property: The counter never leaves 0..GC_CYCLE_LIMIT, and gc is forced
    exactly on every (GC_CYCLE_LIMIT + 1)th changed cycle.
    """
    count = 0
    changed_cycles = 0

    for changed in changes:
        prior = count
        count, forced = daemon.advance_counter(count, changed)

        assert 0 <= count <= GC_CYCLE_LIMIT
        if not changed:
            assert count == prior
            assert not forced
            continue

        changed_cycles += 1
        assert forced == (changed_cycles % (GC_CYCLE_LIMIT + 1) == 0)


codes = st.sampled_from(["??", "A", "M", "D", "MM", "AM", "R", "UU", "!!"])
names = st.text(
    alphabet=st.characters(exclude_categories=("Cs", "Zs", "Zl", "Zp", "Cc")),
    min_size=1,
)


@given(code=codes, name=names, leading=st.sampled_from(["", " "]))
def test_status_line_classification(code: str, name: str, leading: str) -> None:
    """
    Property: Only the four exact codes are recognized; everything else is
    UNKNOWN, and the path is preserved.
    """
    entry = ops.parse_status_line(f"{leading}{code} {name}")

    assert entry is not None
    assert entry.path == name
    if code in ("??", "A", "M", "D"):
        assert entry.code.value == code
    else:
        assert entry.code is ops.StatusCode.UNKNOWN
