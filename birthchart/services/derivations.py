from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .constants import ELEMENT, MODALITY


def balances(signs: Iterable[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    e = {"fire": 0, "earth": 0, "air": 0, "water": 0}
    m = {"cardinal": 0, "fixed": 0, "mutable": 0}
    for s in signs:
        e[ELEMENT[s]] += 1
        m[MODALITY[s]] += 1
    return e, m


def dominant(tally: Mapping[str, int]) -> Optional[str]:
    """The single largest bucket, or ``None`` on a tie or an empty tally."""

    if not tally:
        return None
    top = max(tally.values())
    leaders = [k for k, v in tally.items() if v == top]
    return leaders[0] if top > 0 and len(leaders) == 1 else None


def house_occupancy(house_of_body: Mapping[str, int]) -> Dict[int, List[str]]:
    occupancy: Dict[int, List[str]] = {n: [] for n in range(1, 13)}
    for body, house in house_of_body.items():
        occupancy[house].append(body)
    return occupancy


def notes(element_tally: Mapping[str, int], modality_tally: Mapping[str, int],
          retrograde: List[str], house_of_body: Mapping[str, int]) -> List[str]:
    ns = []
    top_e = dominant(element_tally)
    top_m = dominant(modality_tally)
    if top_e and element_tally[top_e] >= 3:
        ns.append(f"Strong {top_e} emphasis")
    if top_m and modality_tally[top_m] >= 3:
        ns.append(f"{top_m.capitalize()} modality emphasis")
    if retrograde:
        ns.append("Retrograde: " + ", ".join(retrograde))
    angular = [b for b, h in house_of_body.items() if h in (1, 4, 7, 10)]
    if len(angular) >= 3:
        ns.append("Angular emphasis (1/4/7/10)")
    return ns
