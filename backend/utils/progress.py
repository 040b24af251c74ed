from typing import Dict, Iterable


def calculate_progress(completed_fields: Iterable[str], min_fields: int, is_complete: bool = False) -> Dict[str, int]:
    """Progress towards the minimum number of completed topics"""
    completed = len(list(completed_fields))
    if is_complete:
        percent = 100
    elif min_fields <= 0:
        percent = 0
    else:
        # Stay below 100 until the session actually ends
        percent = min(99, round(completed / min_fields * 100))

    return {
        "completed": completed,
        "required": min_fields,
        "remaining": max(0, min_fields - completed),
        "percent": percent,
    }
