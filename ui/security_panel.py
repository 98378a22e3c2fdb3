from __future__ import annotations
import csv
import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional
import numpy as np

import matplotlib
matplotlib.use("TkAgg")

from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from app.analytics.config import RiskConfig
from app.analytics.features import FeatureVector
from app.analytics.risk_scorer import RiskVerdict
from core.hooks.events import utc_iso

FEATURE_LABELS = ("Typing", "Password", "Mouse dist.", "Move samples")

@dataclass
class AttemptRow:
    t_utc: str
    user_id: str
    score: str
    factors: int
    why: str

def feature_ratios(current: FeatureVector, baseline: FeatureVector) -> np.ndarray:
    """current / baseline per feature; 0 where the baseline is 0."""
    cur = np.array([current.avg_typing_speed, current.avg_password_typing_speed,
                    current.total_mouse_distance, current.mouse_click_count], dtype=float)
    base = np.array([baseline.avg_typing_speed, baseline.avg_password_typing_speed,
                     baseline.total_mouse_distance, baseline.mouse_click_count], dtype=float)
    out = np.zeros_like(cur)
    np.divide(cur, base, out=out, where=base > 0)
    return out

class SecurityPanel(ttk.Frame):
    """
    Post-login security view:
      - verdict summary (score, risk factors)
      - anomaly table for recent attempts
      - chart: current/baseline ratio per feature against the rule thresholds
      - Export CSV (attempt history)
    """
    def __init__(self, parent: tk.Widget, max_rows: int = 200, config: Optional[RiskConfig] = None):
        super().__init__(parent)
        self.max_rows = max_rows
        self.cfg = config or RiskConfig()
        self._history: Deque[AttemptRow] = deque(maxlen=max_rows)

        self.score_var = tk.StringVar(value="Score: —")
        self.factors_var = tk.StringVar(value="Risk factors: —")
        self.baseline_var = tk.StringVar(value="Baseline: —")

        self._build_widgets()

    # Public API from host window
    def show_verdict(self, user_id: str, verdict: RiskVerdict, current: FeatureVector, baseline: FeatureVector) -> None:
        self.score_var.set(f"Score: {verdict.level.label}")
        self.factors_var.set(f"Risk factors: {verdict.risk_factors}")
        self.baseline_var.set(
            f"Baseline: {baseline.avg_typing_speed:.0f} ms / {baseline.avg_password_typing_speed:.0f} ms / "
            f"{baseline.total_mouse_distance:.0f} px / {baseline.mouse_click_count} moves"
        )
        row = AttemptRow(t_utc=utc_iso(), user_id=user_id, score=verdict.level.label,
                         factors=verdict.risk_factors, why=verdict.summary())
        self._history.appendleft(row)
        self.tree.insert("", 0, values=(row.t_utc, row.user_id, row.score, row.factors, row.why))
        children = self.tree.get_children("")
        for iid in children[self.max_rows:]:
            self.tree.delete(iid)
        self._redraw_chart(current, baseline)

    # --- UI build ---
    def _build_widgets(self):
        summary = ttk.Frame(self)
        summary.pack(fill="x", padx=8, pady=6)
        ttk.Label(summary, textvariable=self.score_var).pack(side="left", padx=(0, 12))
        ttk.Label(summary, textvariable=self.factors_var).pack(side="left", padx=(0, 12))
        ttk.Label(summary, textvariable=self.baseline_var).pack(side="left")
        ttk.Button(summary, text="Export CSV", command=self._export_csv).pack(side="right")

        feed = ttk.Frame(self)
        feed.pack(fill="both", expand=True, padx=8, pady=(0, 6))

        cols = ("time", "user", "score", "factors", "why")
        self.tree = ttk.Treeview(feed, columns=cols, show="headings", height=6)
        for c, w in [("time", 180), ("user", 140), ("score", 100), ("factors", 70), ("why", 520)]:
            self.tree.heading(c, text=c.capitalize())
            self.tree.column(c, width=w, stretch=(c == "why"))
        self.tree.pack(side="left", fill="both", expand=True)

        yscroll = ttk.Scrollbar(feed, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=yscroll.set)
        yscroll.pack(side="right", fill="y")

        chart = ttk.Frame(self)
        chart.pack(fill="both", expand=False, padx=8, pady=(0, 8))

        self.fig = Figure(figsize=(7.5, 2.8), dpi=100)
        self.ax = self.fig.add_subplot(111)
        self.ax.set_title("Current attempt vs baseline (ratio)")

        self.canvas = FigureCanvasTkAgg(self.fig, master=chart)
        self.canvas.get_tk_widget().pack(fill="both", expand=True)

    def _redraw_chart(self, current: FeatureVector, baseline: FeatureVector):
        ratios = feature_ratios(current, baseline)
        xs = np.arange(len(FEATURE_LABELS))

        self.ax.clear()
        self.ax.bar(xs, ratios, label="current / baseline")
        self.ax.axhline(1.0, color="gray", linewidth=0.8)
        self.ax.axhline(self.cfg.typing_fast_ratio, color="tab:orange", linestyle="--", label="fast")
        self.ax.axhline(self.cfg.typing_slow_ratio, color="tab:red", linestyle="--", label="slow")
        self.ax.set_xticks(xs)
        self.ax.set_xticklabels(FEATURE_LABELS)
        self.ax.set_title("Current attempt vs baseline (ratio)")
        self.ax.legend(loc="upper right")
        self.canvas.draw_idle()

    def _export_csv(self):
        if not self._history:
            messagebox.showinfo("Export CSV", "No attempts to export yet.")
            return
        path = filedialog.asksaveasfilename(
            title="Export CSV",
            defaultextension=".csv",
            filetypes=[("CSV", "*.csv")]
        )
        if not path:
            return
        try:
            with open(path, "w", newline="", encoding="utf-8") as f:
                w = csv.writer(f)
                w.writerow(["time", "user", "score", "factors", "why"])
                for r in reversed(self._history):
                    w.writerow([r.t_utc, r.user_id, r.score, r.factors, r.why])
            messagebox.showinfo("Export CSV", f"Exported {len(self._history)} rows to:\n{path}")
        except OSError as e:
            messagebox.showerror("Export CSV", f"Failed to export: {e}")
