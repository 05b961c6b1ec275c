"""Line-based diff for comparing template files.

Templates are small (hundreds of lines), so a plain O(m*n) longest common
subsequence table is used rather than a Myers-style algorithm.
"""

from typing import List, Sequence, Tuple

from rich.markup import escape

from storepix.models.diff import ChangeCounts, DiffOp, DiffOpType


def _lcs_pairs(old: Sequence[str], new: Sequence[str]) -> List[Tuple[int, int]]:
    """Return ``(old_index, new_index)`` pairs of lines kept by the LCS."""
    m, n = len(old), len(new)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if old[i - 1] == new[j - 1]:
                dp[i][j] = dp[i - 1][j - 1] + 1
            else:
                dp[i][j] = max(dp[i - 1][j], dp[i][j - 1])

    pairs = []
    i, j = m, n
    while i > 0 and j > 0:
        if old[i - 1] == new[j - 1]:
            pairs.append((i - 1, j - 1))
            i -= 1
            j -= 1
        elif dp[i - 1][j] > dp[i][j - 1]:
            i -= 1
        else:
            j -= 1

    pairs.reverse()
    return pairs


def diff(old_text: str, new_text: str) -> List[DiffOp]:
    """Diff two texts line by line.

    Texts are split on ``"\\n"``, so an empty string is one empty line.
    ``SAME`` and ``REMOVE`` ops carry old line numbers, ``ADD`` ops carry new
    line numbers; all are 1-based.
    """
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")

    ops: List[DiffOp] = []
    old_index = 0
    new_index = 0

    for old_match, new_match in _lcs_pairs(old_lines, new_lines):
        while old_index < old_match:
            ops.append(
                DiffOp(
                    type=DiffOpType.REMOVE,
                    line=old_index + 1,
                    content=old_lines[old_index],
                )
            )
            old_index += 1
        while new_index < new_match:
            ops.append(
                DiffOp(
                    type=DiffOpType.ADD,
                    line=new_index + 1,
                    content=new_lines[new_index],
                )
            )
            new_index += 1
        ops.append(
            DiffOp(
                type=DiffOpType.SAME,
                line=old_index + 1,
                content=old_lines[old_index],
            )
        )
        old_index += 1
        new_index += 1

    for index in range(old_index, len(old_lines)):
        ops.append(
            DiffOp(type=DiffOpType.REMOVE, line=index + 1, content=old_lines[index])
        )
    for index in range(new_index, len(new_lines)):
        ops.append(
            DiffOp(type=DiffOpType.ADD, line=index + 1, content=new_lines[index])
        )

    return ops


def format_diff(ops: Sequence[DiffOp], context_lines: int = 3) -> str:
    """Render changed lines as hunks in rich console markup.

    Each change is surrounded by up to ``context_lines`` unchanged lines and
    hunks that are not adjacent are separated by ``...``. Returns an empty
    string when nothing changed.
    """
    output: List[str] = []
    last_printed = -context_lines - 1
    in_hunk = False

    for i, op in enumerate(ops):
        if op.type == DiffOpType.SAME:
            continue

        if last_printed < i - context_lines - 1 and output and in_hunk:
            output.append("[cyan]...[/cyan]")
        in_hunk = True

        # Leading context
        for j in range(max(last_printed + 1, i - context_lines), i):
            if j >= 0 and ops[j].type == DiffOpType.SAME:
                output.append(f"  {escape(ops[j].content)}")

        if op.type == DiffOpType.ADD:
            output.append(f"[green]+ {escape(op.content)}[/green]")
        else:
            output.append(f"[red]- {escape(op.content)}[/red]")
        last_printed = i

        # Trailing context, stopping at the next change
        after = 0
        for j in range(i + 1, len(ops)):
            if after >= context_lines or ops[j].type != DiffOpType.SAME:
                break
            output.append(f"  {escape(ops[j].content)}")
            last_printed = j
            after += 1

    return "\n".join(output)


def has_differences(old_text: str, new_text: str) -> bool:
    """Plain string inequality; no diff is computed."""
    return old_text != new_text


def count_changes(ops: Sequence[DiffOp]) -> ChangeCounts:
    additions = sum(1 for op in ops if op.type == DiffOpType.ADD)
    removals = sum(1 for op in ops if op.type == DiffOpType.REMOVE)
    return ChangeCounts(additions=additions, removals=removals)
