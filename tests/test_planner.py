import pytest

from domain.upload import InvalidPartPlanError, plan_parts

MiB = 1024 * 1024


def test_twelve_megabytes_in_five_megabyte_parts():
    plan = plan_parts(12 * MiB, 5 * MiB)
    assert [(p.part_number, p.offset, p.length) for p in plan] == [
        (1, 0, 5 * MiB),
        (2, 5 * MiB, 5 * MiB),
        (3, 10 * MiB, 2 * MiB),
    ]


@pytest.mark.parametrize(
    "size,max_part",
    [(1, 1), (1, 10), (10, 1), (10, 3), (10, 5), (10, 10), (10, 11), (5 * MiB + 1, 5 * MiB)],
)
def test_spans_cover_payload_exactly(size, max_part):
    plan = plan_parts(size, max_part)

    assert len(plan) == -(-size // max_part)
    assert [p.part_number for p in plan] == list(range(1, len(plan) + 1))
    assert plan[0].offset == 0
    assert plan[-1].end == size
    for prev, nxt in zip(plan, plan[1:]):
        assert nxt.offset == prev.end
    assert all(0 < p.length <= max_part for p in plan)
    assert sum(p.length for p in plan) == size


def test_plan_is_deterministic():
    assert plan_parts(123_457, 1000) == plan_parts(123_457, 1000)


def test_slices_reassemble_payload():
    data = bytes(range(256)) * 3
    plan = plan_parts(len(data), 100)
    assert b"".join(p.slice(data) for p in plan) == data


def test_empty_payload_yields_single_empty_part():
    plan = plan_parts(0, 5 * MiB)
    assert len(plan) == 1
    assert plan[0].part_number == 1
    assert plan[0].length == 0
    assert plan[0].slice(b"") == b""


@pytest.mark.parametrize("size,max_part", [(10, 0), (10, -1), (-1, 5)])
def test_invalid_arguments_rejected(size, max_part):
    with pytest.raises(InvalidPartPlanError):
        plan_parts(size, max_part)
