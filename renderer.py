from datetime import date

from matplotlib.patches import Patch

from config import DEPENDENCY_ALPHA, status_colors
from core_logic import (
    as_date, calculate_task_position, chart_width, days_between, generate_timeline_headers, task_color,
)
from dependencies import dependency_lines


def row_label(row, expanded, wbs_codes=None):
    marker = "   "
    if row.get('has_children'):
        marker = "[-]" if row['id'] in expanded else "[+]"
    code = f"{wbs_codes[row['id']]} " if wbs_codes and row['id'] in wbs_codes else ""
    return f"{'    ' * row.get('level', 0)}{marker} {code}{row['name']}"


def draw_gantt_chart(ax, rows, view_settings, title=None, expanded=(), wbs_codes=None,
                     show_dependencies=True, today=None):
    """
    Draws visible rows onto a Matplotlib Axes using the pixel geometry from
    the position calculator (x = pixels from view start, y = pixels from the
    top row). Returns one chart item per bar for hit testing.
    """
    ax.clear()
    chart_items = []

    if not rows:
        ax.text(0.5, 0.5, "No tasks to display.\nUse the File menu to start.",
                horizontalalignment='center', verticalalignment='center', transform=ax.transAxes)
        ax.set_xticks([])
        ax.set_yticks([])
        return chart_items

    row_height = view_settings['row_height']

    for i, row in enumerate(rows):
        position = row.get('position') or calculate_task_position(row, view_settings, i)
        color = status_colors.get(row.get('status')) or task_color(row['id'])
        patch = ax.barh(y=position['top'], width=position['width'], left=position['left'],
                        height=position['height'], align='edge', color=color,
                        edgecolor='black', alpha=0.9)[0]

        progress = row.get('progress', 0)
        if 0 < progress < 100:
            ax.barh(y=position['top'], width=position['width'] * progress / 100, left=position['left'],
                    height=position['height'], align='edge', color='black', alpha=0.2)

        chart_items.append({'id': row['id'], 'level': row.get('level', 0), 'data': row,
                            'patch': patch, 'connections': []})

    ax.set_yticks([(i + 0.5) * row_height for i in range(len(rows))])
    ax.set_yticklabels([row_label(row, expanded, wbs_codes) for row in rows],
                       fontfamily='monospace', fontsize=8)

    headers = generate_timeline_headers(view_settings)
    ax.set_xticks([month['left'] for month in headers['months']])
    ax.set_xticklabels([month['label'] for month in headers['months']], rotation=90, ha='center')

    today = as_date(today or date.today())
    if view_settings['view_start'] <= today <= view_settings['view_end']:
        today_x = (days_between(view_settings['view_start'], today) + 0.5) * view_settings['day_width']
        ax.axvline(today_x, color='#ef4444', linestyle=':', lw=1.5)

    if show_dependencies:
        _draw_dependency_arrows(ax, rows, view_settings, chart_items)

    ax.set_xlim(0, chart_width(view_settings))
    ax.set_ylim(len(rows) * row_height, 0)
    ax.grid(axis='x', linestyle='--', alpha=0.6)
    if title:
        ax.set_title(title)
    ax.set_xlabel('Date')
    ax.set_ylabel('Tasks')

    legend_elements = [Patch(facecolor=color, edgecolor='black', label=status)
                       for status, color in status_colors.items()]
    ax.legend(handles=legend_elements, loc='lower right')
    return chart_items


def _draw_dependency_arrows(ax, rows, view_settings, chart_items):
    items_by_id = {item['id']: item for item in chart_items}

    for line in dependency_lines(rows, view_settings):
        xs, ys = zip(*line['points'])
        ax.plot(xs[:-1], ys[:-1], color=line['color'], alpha=DEPENDENCY_ALPHA, linestyle='--', lw=1.5)
        con = ax.annotate("", xy=line['points'][-1], xytext=line['points'][-2],
                          arrowprops=dict(arrowstyle="-|>", color=line['color'],
                                          alpha=DEPENDENCY_ALPHA, ls='--', lw=1.5))
        items_by_id[line['from_task']]['connections'].append(con)
        items_by_id[line['to_task']]['connections'].append(con)
