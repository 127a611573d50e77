import tkinter as tk
from tkinter import ttk, simpledialog, messagebox
import copy

from config import STATUSES
from core_logic import build_hierarchy, calculate_duration, find_task, iter_tree
from dependencies import validate_dependencies
from importers import FIELD_DEFINITIONS, format_predecessors, guess_column_mapping, normalize_task

class EditTaskDialog(simpledialog.Dialog):
    def __init__(self, parent, title, task_data, all_tasks):
        self.task_data_original = task_data
        self.task_data_copy = copy.deepcopy(task_data)
        self.all_tasks = all_tasks
        self.result = None
        super().__init__(parent, title)

    def _parent_options(self):
        # A task cannot be moved under itself or one of its descendants.
        excluded = {self.task_data_original['id']}
        node = find_task(build_hierarchy(self.all_tasks), self.task_data_original['id'])
        if node:
            excluded.update(child['id'] for child, _ in iter_tree(node['children']))
        return ["None"] + [t['id'] for t in self.all_tasks if t['id'] not in excluded]

    def body(self, master):
        main_frame = ttk.LabelFrame(master, text="Task Properties", padding=10)
        main_frame.pack(fill=tk.X, padx=10, pady=5)

        ttk.Label(main_frame, text="Task ID:").grid(row=0, column=0, sticky="w", padx=5, pady=2)
        ttk.Label(main_frame, text=self.task_data_copy['id']).grid(row=0, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Task Name:").grid(row=1, column=0, sticky="w", padx=5, pady=2)
        self.name_var = tk.StringVar(value=self.task_data_copy['name'])
        name_entry = ttk.Entry(main_frame, textvariable=self.name_var, width=40)
        name_entry.grid(row=1, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Parent:").grid(row=2, column=0, sticky="w", padx=5, pady=2)
        self.parent_var = tk.StringVar(value=self.task_data_copy.get('parent_id') or "None")
        parent_cb = ttk.Combobox(main_frame, textvariable=self.parent_var, values=self._parent_options(),
                                 state="readonly", width=37)
        parent_cb.grid(row=2, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Start Date:").grid(row=3, column=0, sticky="w", padx=5, pady=2)
        self.start_date_var = tk.StringVar(value=self.task_data_copy['start_date'].isoformat())
        start_entry = ttk.Entry(main_frame, textvariable=self.start_date_var, width=40)
        start_entry.grid(row=3, column=1, sticky="w", padx=5, pady=2)
        start_entry.bind('<FocusOut>', self._update_duration_display)

        ttk.Label(main_frame, text="End Date:").grid(row=4, column=0, sticky="w", padx=5, pady=2)
        self.end_date_var = tk.StringVar(value=self.task_data_copy['end_date'].isoformat())
        end_entry = ttk.Entry(main_frame, textvariable=self.end_date_var, width=40)
        end_entry.grid(row=4, column=1, sticky="w", padx=5, pady=2)
        end_entry.bind('<FocusOut>', self._update_duration_display)

        ttk.Label(main_frame, text="Work Days:").grid(row=5, column=0, sticky="w", padx=5, pady=2)
        self.duration_var = tk.StringVar()
        ttk.Label(main_frame, textvariable=self.duration_var).grid(row=5, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Status:").grid(row=6, column=0, sticky="w", padx=5, pady=2)
        self.status_var = tk.StringVar(value=self.task_data_copy['status'])
        status_cb = ttk.Combobox(main_frame, textvariable=self.status_var, values=list(STATUSES),
                                 state="readonly", width=37)
        status_cb.grid(row=6, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Progress (%):").grid(row=7, column=0, sticky="w", padx=5, pady=2)
        self.progress_var = tk.StringVar(value=str(self.task_data_copy.get('progress', 0)))
        ttk.Entry(main_frame, textvariable=self.progress_var, width=40).grid(row=7, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Predecessors:").grid(row=8, column=0, sticky="w", padx=5, pady=2)
        self.predecessors_var = tk.StringVar(value=format_predecessors(self.task_data_copy.get('predecessors') or []))
        ttk.Entry(main_frame, textvariable=self.predecessors_var, width=40).grid(row=8, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(master,
                  text="Dates use YYYY-MM-DD. Predecessors are comma separated, e.g. 'A:FS, B:SS+2'.",
                  font=("Arial", 8, "italic"), justify=tk.LEFT).pack(anchor="w", padx=10, pady=(0, 5))

        self._update_duration_display()
        return name_entry

    def _update_duration_display(self, event=None):
        try:
            task = self._build_task()
        except ValueError:
            self.duration_var.set("-")
            return
        self.duration_var.set(str(calculate_duration(task['start_date'], task['end_date'])))

    def _build_task(self):
        parent = self.parent_var.get()
        return normalize_task({
            'id': self.task_data_copy['id'],
            'name': self.name_var.get(),
            'parent_id': parent if parent != "None" else None,
            'start_date': self.start_date_var.get(),
            'end_date': self.end_date_var.get(),
            'status': self.status_var.get(),
            'progress': self.progress_var.get(),
            'predecessors': self.predecessors_var.get(),
        })

    def validate(self):
        try:
            task = self._build_task()
        except ValueError as e:
            messagebox.showerror("Invalid Task", str(e), parent=self)
            return False

        predecessor_ids = [link['predecessor_id'] for link in task['predecessors']]
        is_valid, conflicts = validate_dependencies(self.all_tasks, task['id'], predecessor_ids)
        if not is_valid:
            messagebox.showerror("Invalid Predecessors", "\n".join(conflicts), parent=self)
            return False

        self.task_data_copy = task
        return True

    def apply(self):
        self.task_data_original.clear()
        self.task_data_original.update(self.task_data_copy)
        self.result = True


class ColumnMappingDialog(simpledialog.Dialog):
    """
    Dialog for mapping CSV/Excel columns to task fields during import.
    """
    def __init__(self, parent, title, columns):
        self.columns = columns
        self.mapping = {}
        super().__init__(parent, title)

    def body(self, master):
        instruction_frame = ttk.Frame(master, padding=10)
        instruction_frame.pack(fill=tk.X)

        ttk.Label(
            instruction_frame,
            text="Map the columns from your file to the corresponding task fields.\n"
                 "Leave fields as 'Not Mapped' if not applicable.",
            justify=tk.LEFT
        ).pack(anchor="w")

        mapping_frame = ttk.LabelFrame(master, text="Column Mapping", padding=10)
        mapping_frame.pack(fill=tk.X, padx=10, pady=10)

        guessed = guess_column_mapping(self.columns)
        self.mapping_vars = {}
        column_options = ["Not Mapped"] + self.columns

        for i, (label, key, required, _) in enumerate(FIELD_DEFINITIONS):
            label_text = f"{label}*:" if required else f"{label}:"
            ttk.Label(mapping_frame, text=label_text).grid(
                row=i, column=0, sticky="w", padx=5, pady=3
            )

            var = tk.StringVar(value=guessed.get(key, "Not Mapped"))
            combo = ttk.Combobox(
                mapping_frame,
                textvariable=var,
                values=column_options,
                state="readonly",
                width=30
            )
            combo.grid(row=i, column=1, sticky="w", padx=5, pady=3)

            self.mapping_vars[key] = var

        # Required field note
        ttk.Label(
            master,
            text="* Required field",
            font=("Arial", 8, "italic")
        ).pack(anchor="w", padx=10, pady=(0, 10))

        return mapping_frame

    def validate(self):
        """Validate that required fields are mapped."""
        for label, key, required, _ in FIELD_DEFINITIONS:
            if required and self.mapping_vars[key].get() == "Not Mapped":
                messagebox.showerror(
                    "Mapping Required",
                    f"You must map a column to '{label}'.",
                    parent=self
                )
                return False
        return True

    def apply(self):
        """Build the mapping dictionary from the selected values."""
        for key, var in self.mapping_vars.items():
            value = var.get()
            if value and value != "Not Mapped":
                self.mapping[key] = value
