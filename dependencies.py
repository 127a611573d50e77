from datetime import timedelta

from config import DEPENDENCY_INSET, dependency_colors, status_colors
from core_logic import as_date, calculate_duration, calculate_task_position, days_between

# --- Predecessor Constraints ---

def dependency_date(predecessor, dependency_type, lag=0):
    """
    The date a single predecessor link pins its successor to. FS and FF hang
    off the predecessor's finish, SS and SF off its start.
    """
    if dependency_type in ("SS", "SF"):
        constraint = predecessor['start_date']
    else:
        constraint = predecessor['end_date']
    return as_date(constraint) + timedelta(days=lag or 0)

def earliest_start_date(task, tasks_by_id):
    earliest = None
    for link in task.get('predecessors') or []:
        predecessor = tasks_by_id.get(link['predecessor_id'])
        if predecessor is None:
            continue
        constraint = dependency_date(predecessor, link.get('type', 'FS'), link.get('lag', 0))
        if earliest is None or constraint > earliest:
            earliest = constraint
    return earliest

def validate_task_schedule(task, tasks_by_id):
    violations = []
    for link in task.get('predecessors') or []:
        predecessor = tasks_by_id.get(link['predecessor_id'])
        if predecessor is None:
            continue

        dependency_type = link.get('type', 'FS')
        constraint = dependency_date(predecessor, dependency_type, link.get('lag', 0))
        name = predecessor.get('name', predecessor['id'])

        if dependency_type == 'FS' and as_date(task['start_date']) < constraint:
            violations.append(f"Task cannot start before {name} finishes")
        elif dependency_type == 'SS' and as_date(task['start_date']) < constraint:
            violations.append(f"Task cannot start before {name} starts")
        elif dependency_type == 'FF' and as_date(task['end_date']) < constraint:
            violations.append(f"Task cannot finish before {name} finishes")
        elif dependency_type == 'SF' and as_date(task['end_date']) < constraint:
            violations.append(f"Task cannot finish before {name} starts")

    return len(violations) == 0, violations

def auto_schedule_task(task, tasks_by_id):
    """Moves a task to its earliest allowed start, keeping its calendar span."""
    earliest = earliest_start_date(task, tasks_by_id)
    if earliest is None:
        return {}

    span = days_between(task['start_date'], task['end_date'])
    return {
        'start_date': earliest,
        'end_date': earliest + timedelta(days=span),
    }

def validate_dependencies(tasks, task_id, predecessor_ids):
    """
    Checks a proposed set of predecessors for a task before it is saved.
    Returns (is_valid, conflicts).
    """
    tasks_by_id = {t['id']: t for t in tasks}
    conflicts = []

    def predecessors_of(current_id):
        if current_id == task_id:
            return list(predecessor_ids)
        task = tasks_by_id.get(current_id)
        if task is None:
            return []
        return [link['predecessor_id'] for link in task.get('predecessors') or []]

    for predecessor_id in predecessor_ids:
        if predecessor_id not in tasks_by_id:
            conflicts.append(f'Dependency task "{predecessor_id}" not found')
            continue

        stack = [(predecessor_id, [task_id])]
        while stack:
            current_id, path = stack.pop()
            if current_id in path:
                chain = ' -> '.join(path + [current_id])
                conflicts.append(f"Circular dependency detected: {chain}")
                break
            for next_id in predecessors_of(current_id):
                stack.append((next_id, path + [current_id]))

    return len(conflicts) == 0, conflicts

# --- Connector Geometry ---

def dependency_lines(rows, view_settings):
    """
    Connector polylines between visible rows. Links whose predecessor is not
    currently visible (collapsed away or missing) are skipped.
    """
    row_height = view_settings['row_height']
    index_by_id = {row['id']: i for i, row in enumerate(rows)}
    lines = []

    for task_index, task in enumerate(rows):
        for link in task.get('predecessors') or []:
            predecessor_index = index_by_id.get(link['predecessor_id'])
            if predecessor_index is None:
                continue
            predecessor = rows[predecessor_index]
            dependency_type = link.get('type', 'FS')

            from_pos = calculate_task_position(predecessor, view_settings, predecessor_index)
            to_pos = calculate_task_position(task, view_settings, task_index)

            if dependency_type in ('FS', 'FF'):
                from_x = from_pos['left'] + from_pos['width'] - DEPENDENCY_INSET
            else:
                from_x = from_pos['left'] + DEPENDENCY_INSET
            if dependency_type in ('FF', 'SF'):
                to_x = to_pos['left'] + to_pos['width'] - DEPENDENCY_INSET
            else:
                to_x = to_pos['left'] + DEPENDENCY_INSET

            from_y = (predecessor_index + 0.5) * row_height
            to_y = (task_index + 0.5) * row_height
            points = [(from_x, from_y), (from_x, to_y), (to_x, to_y)]

            lines.append({
                'id': f"{link['predecessor_id']}-{task['id']}-{dependency_type}",
                'from_task': link['predecessor_id'],
                'to_task': task['id'],
                'type': dependency_type,
                'points': points,
                'path': f"M {from_x} {from_y} L {from_x} {to_y} L {to_x} {to_y}",
                'color': dependency_colors.get(dependency_type, '#6b7280'),
            })
    return lines

# --- Project Statistics ---

def find_critical_path(tasks):
    """
    Longest chain of work days through predecessor links, first task first.
    Links that close a cycle are ignored.
    """
    tasks_by_id = {t['id']: t for t in tasks}
    best = {}
    state = {}

    def links(task_id):
        return [link['predecessor_id'] for link in tasks_by_id[task_id].get('predecessors') or []
                if link['predecessor_id'] in tasks_by_id]

    for root_id in tasks_by_id:
        stack = [(root_id, False)]
        while stack:
            task_id, done = stack.pop()
            if done:
                task = tasks_by_id[task_id]
                longest, previous = 0, None
                for predecessor_id in links(task_id):
                    if state.get(predecessor_id) == 'done' and best[predecessor_id][0] > longest:
                        longest, previous = best[predecessor_id][0], predecessor_id
                best[task_id] = (calculate_duration(task['start_date'], task['end_date']) + longest, previous)
                state[task_id] = 'done'
                continue
            if task_id in state:
                continue
            state[task_id] = 'visiting'
            stack.append((task_id, True))
            for predecessor_id in links(task_id):
                if predecessor_id not in state:
                    stack.append((predecessor_id, False))

    if not best:
        return []

    end_id = None
    for task_id in tasks_by_id:
        if end_id is None or best[task_id][0] > best[end_id][0]:
            end_id = task_id

    path = []
    current = end_id
    while current is not None:
        path.append(current)
        current = best[current][1]
    path.reverse()
    return path

def project_stats(tasks):
    total = len(tasks)
    completed = sum(1 for t in tasks if t.get('status') == 'completed')
    average_progress = round(sum(t.get('progress', 0) for t in tasks) / total) if total else 0
    by_status = {status: sum(1 for t in tasks if t.get('status') == status) for status in status_colors}
    return {
        'total_tasks': total,
        'completed_tasks': completed,
        'remaining_tasks': total - completed,
        'average_progress': average_progress,
        'by_status': by_status,
        'critical_path': find_critical_path(tasks),
    }
