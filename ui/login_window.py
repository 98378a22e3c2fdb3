from __future__ import annotations
import tkinter as tk
from tkinter import ttk
from typing import Optional
import structlog

from app.analytics.signal_collector import SignalCollector
from app.controller.login_flow import LoginFlow, StaticCredentialChecker
from app.controller.session_state import AuthSession
from app.profile.store import ProfileStore, SqliteProfileStore, StoreConfig
from core.hooks.events import FieldKind
from ui.security_panel import SecurityPanel

log = structlog.get_logger()

class LoginWindow(tk.Tk):
    def __init__(self, store: Optional[ProfileStore] = None):
        super().__init__()
        self.title("Behavioral Login Guard")
        self.geometry("1000x680")
        self.minsize(820, 480)

        self.session = AuthSession()
        self.collector = SignalCollector()
        self.flow = LoginFlow(
            checker=StaticCredentialChecker(),
            store=store or SqliteProfileStore(StoreConfig.from_env()),
            session=self.session,
        )

        self._content = ttk.Frame(self, padding=12)
        self._content.pack(fill="both", expand=True)

        self._build_form()

        self.panel = SecurityPanel(self._content, max_rows=200)
        self.panel.pack(fill="both", expand=True)

        self.status_var = tk.StringVar(value="Ready")
        self._status = ttk.Label(self, textvariable=self.status_var, anchor="w", padding=(8, 4))
        self._status.pack(side="bottom", fill="x")

        # Pointer samples from anywhere in the window (toplevel bindtag)
        self.bind("<Motion>", self._on_motion)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

        # fresh attempt
        self.collector.reset()

    def _build_form(self):
        form = ttk.LabelFrame(self._content, text="Sign in", padding=10)
        form.pack(side="top", fill="x", pady=(0, 8))

        self.user_var = tk.StringVar()
        self.pass_var = tk.StringVar()
        self.mfa_var = tk.StringVar()

        ttk.Label(form, text="Email").grid(row=0, column=0, sticky="w")
        user = ttk.Entry(form, textvariable=self.user_var, width=36)
        user.grid(row=0, column=1, sticky="we", pady=2)
        user.bind("<KeyPress>", lambda e: self._on_key(FieldKind.GENERAL))

        ttk.Label(form, text="Password").grid(row=1, column=0, sticky="w")
        pwd = ttk.Entry(form, textvariable=self.pass_var, show="•", width=36)
        pwd.grid(row=1, column=1, sticky="we", pady=2)
        pwd.bind("<KeyPress>", lambda e: self._on_key(FieldKind.PASSWORD))

        ttk.Label(form, text="MFA code").grid(row=2, column=0, sticky="w")
        mfa = ttk.Entry(form, textvariable=self.mfa_var, width=12)
        mfa.grid(row=2, column=1, sticky="w", pady=2)
        mfa.bind("<KeyPress>", lambda e: self._on_key(FieldKind.GENERAL))

        buttons = ttk.Frame(form)
        buttons.grid(row=3, column=1, sticky="e", pady=(6, 0))
        ttk.Button(buttons, text="Sign up", command=self._signup).pack(side="right")
        ttk.Button(buttons, text="Log in", command=self._login).pack(side="right", padx=(0, 8))
        ttk.Button(buttons, text="Log out", command=self._logout).pack(side="right", padx=(0, 8))

        form.columnconfigure(1, weight=1)

    # --- input callbacks ---
    def _on_key(self, kind: FieldKind):
        try:
            self.collector.on_key_event(kind)
        except Exception as e:
            log.warning("ui.key.error", err=str(e))

    def _on_motion(self, e: tk.Event):
        try:
            # window-relative coordinates regardless of which widget got the event
            self.collector.on_pointer_move(e.x_root - self.winfo_rootx(), e.y_root - self.winfo_rooty())
        except Exception as err:
            log.warning("ui.motion.error", err=str(err))

    # --- actions ---
    def _login(self):
        self.set_status("Checking…")
        result = self.flow.login(self.user_var.get(), self.pass_var.get(), self.mfa_var.get(), self.collector)
        self.pass_var.set("")
        self.mfa_var.set("")
        if not result.success:
            self.set_status(f"Login failed: {result.error}")
            return
        self.panel.show_verdict(result.user_id, result.verdict, result.features, result.baseline)
        self.set_status(f"Logged in as {result.user_id} ({result.verdict.level.label})")

    def _signup(self):
        result = self.flow.signup(self.user_var.get(), self.pass_var.get())
        self.pass_var.set("")
        self.collector.reset()
        if result.success:
            self.set_status(f"Account created: {result.user_id}")
        else:
            self.set_status(f"Sign up failed: {result.error}")

    def _logout(self):
        self.flow.logout()
        self.collector.reset()
        self.set_status("Logged out")

    # --- Status helpers ---
    def set_status(self, text: str) -> None:
        self.status_var.set(text)
        self._status.update_idletasks()

    def _on_close(self):
        try:
            if self.session.logged_in:
                self.flow.logout()
        finally:
            self.destroy()
