"""Group works that describe the same output, using shared groupable external identifiers."""

from typing import Dict, List, Tuple
from .identifiers import merge_external_ids, dump_external_ids
from .models import Work
from .schemas import external_ids_of, work_summary

SORT_KEYS = ("date", "title", "type")


class _DisjointSet:
    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, item: int) -> int:
        while self.parent[item] != item:
            self.parent[item] = self.parent[self.parent[item]]
            item = self.parent[item]
        return item

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self.parent[max(root_a, root_b)] = min(root_a, root_b)


def preferred_work(works: List[Work]) -> Work:
    """Highest display index wins; the newest put code breaks ties."""
    return max(works, key=lambda w: (w.display_index, w.id or 0))


def group_works(works: List[Work], sort: str = "date") -> List[Dict]:
    """Works sharing any groupable identifier (transitively) form one group."""
    sets = _DisjointSet(len(works))
    owner_of_key: Dict[Tuple[str, str], int] = {}
    for position, work in enumerate(works):
        for ext_id in external_ids_of(work):
            if not ext_id.is_groupable:
                continue
            key = ext_id.group_key()
            if key in owner_of_key:
                sets.union(owner_of_key[key], position)
            else:
                owner_of_key[key] = position

    members: Dict[int, List[Work]] = {}
    for position, work in enumerate(works):
        members.setdefault(sets.find(position), []).append(work)

    groups = []
    for group in members.values():
        preferred = preferred_work(group)
        ordered = sorted(group, key=lambda w: (w.display_index, w.id or 0), reverse=True)
        groupable = merge_external_ids(
            [e for e in external_ids_of(w) if e.is_groupable] for w in ordered
        )
        groups.append({
            "preferred_put_code": preferred.id,
            "external_ids": dump_external_ids(groupable),
            "works": [work_summary(w) for w in ordered],
            "_preferred": preferred,
        })

    if sort == "title":
        groups.sort(key=lambda g: (g["_preferred"].title or "").lower())
    elif sort == "type":
        groups.sort(key=lambda g: (g["_preferred"].work_type, (g["_preferred"].title or "").lower()))
    else:
        # newest first; undated works last, then by title
        groups.sort(key=lambda g: (g["_preferred"].title or "").lower())
        groups.sort(key=lambda g: g["_preferred"].publication_date or "", reverse=True)

    for group in groups:
        del group["_preferred"]
    return groups
