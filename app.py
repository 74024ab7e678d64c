# app.py

import json
import logging

import dash
import dash_daq as daq
import plotly.graph_objects as go
from dash import ALL, Input, Output, State, ctx, dcc, html

from config import (
    AI_USAGE,
    COLLABORATION,
    COMPLIANCE,
    NUDGE_LEVELS,
    PROJECT_TYPES,
    QUESTION_ORDER,
    REMINDERS,
    REPO_VISIBILITY,
    RISK_AREAS,
    RISK_LABELS,
    SENSITIVITY,
    STEP_META,
    STORAGE,
    load_settings,
)
from exports import export_filename, write_pdf_bytes
from llm import run_effect
from scoring import MAX_SCORE, MIN_SCORE, score_breakdown
from session import (
    REVIEW_STEP,
    Session,
    apply_inferred,
    begin_generation,
    build_brief,
    edit_answers,
    next_step,
    previous_step,
    receive_result,
    request_extraction,
    request_inference,
    restart,
    return_to_landing,
    send_message,
    set_answer,
    start,
)

SETTINGS = load_settings()

logging.basicConfig(
    level=SETTINGS.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = dash.Dash(__name__, suppress_callback_exceptions=True)
app.title = "AGENTS.md Privacy Brief Builder"
server = app.server

FIELD_OPTIONS = {
    "projectType": PROJECT_TYPES,
    "repoVisibility": REPO_VISIBILITY,
    "dataSensitivity": SENSITIVITY,
    "highestRiskArea": RISK_AREAS,
    "aiUsage": AI_USAGE,
    "collaboration": COLLABORATION,
    "nudgeLevel": NUDGE_LEVELS,
    "compliance": COMPLIANCE,
    "storage": STORAGE,
    "reminders": REMINDERS,
}
MULTI_FIELDS = ("compliance", "storage", "reminders")

# for chart sizes
GAUGE_H = 260
BREAKDOWN_H = 300


# ----------- Helpers -------------
def _action(name, label, className="secondary", disabled=False):
    return html.Button(
        label,
        id={"type": "action", "name": name},
        n_clicks=0,
        className=className,
        disabled=disabled,
    )


def _format_value(value):
    """
    Display form of an inferred configuration value.

    Lists are joined with commas ("None" when empty), blank strings read
    "Not specified".
    """
    if isinstance(value, (list, tuple)):
        return ", ".join(value) if value else "None"
    if isinstance(value, str):
        return value or "Not specified"
    return str(value)


def _options(options):
    out = []
    for o in options:
        if isinstance(o, dict):
            label = o["label"]
            if o.get("helper"):
                label = html.Span(
                    [html.Strong(o["label"]), html.Span(f" · {o['helper']}", className="helper")]
                )
            out.append({"label": label, "value": o["value"]})
        else:
            out.append({"label": o, "value": o})
    return out


def _base_fig_layout(fig, theme="light", height=300):
    """
    Apply a consistent layout to a figure.

    Transparent background, font colour contrasting with the light/dark theme.

    :param fig: a figure to update
    :param theme: a string, either "light" or "dark"
    :param height: the height of the figure in pixels
    :return: the updated figure
    """
    font_color = "#f6f7fb" if theme == "dark" else "#0b1020"
    grid_color = "#334155" if theme == "dark" else "#CBD5E1"
    fig.update_layout(
        autosize=False,
        height=height,
        margin=dict(l=30, r=30, t=30, b=30),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(color=font_color),
        xaxis=dict(gridcolor=grid_color, zeroline=False, fixedrange=True),
        yaxis=dict(gridcolor=grid_color, fixedrange=True),
        uirevision="keep",
    )
    return fig


# ---------- Figures ------------------
def risk_gauge_figure(assessment, theme="light"):
    """
    Gauge of the risk score with the four level bands.

    Args:
        assessment (RiskAssessment): score and level
        theme (str, optional): light or dark. Defaults to "light".

    Returns:
        go.Figure: gauge figure
    """
    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=assessment.score,
            number={"suffix": f"/{MAX_SCORE}"},
            title={"text": RISK_LABELS[assessment.level]["title"]},
            gauge={
                "axis": {"range": [MIN_SCORE, MAX_SCORE], "dtick": 1},
                "bar": {"color": "#4f46e5"},
                "steps": [
                    {"range": [1, 2.5], "color": "#bbf7d0"},
                    {"range": [2.5, 4.5], "color": "#fef08a"},
                    {"range": [4.5, 6.5], "color": "#fed7aa"},
                    {"range": [6.5, 8], "color": "#fecaca"},
                ],
            },
        )
    )
    return _base_fig_layout(fig, theme, height=GAUGE_H)


def breakdown_figure(breakdown, theme="light"):
    """
    Horizontal bar of the points each answer adds to the score.

    Args:
        breakdown (pd.DataFrame): output of `scoring.score_breakdown`
        theme (str, optional): light or dark. Defaults to "light".

    Returns:
        go.Figure: bar figure
    """
    df = breakdown.iloc[::-1]
    fig = go.Figure(
        go.Bar(
            x=df["points"],
            y=df["factor"],
            orientation="h",
            text=df["answer"],
            hovertemplate="%{y}: %{x:+d} (%{text})<extra></extra>",
            marker_color=["#ef4444" if p > 0 else "#22c55e" for p in df["points"]],
        )
    )
    fig.update_layout(xaxis=dict(dtick=1, title="points"))
    return _base_fig_layout(fig, theme, height=BREAKDOWN_H)


# -------------- Views --------------------
def landing_view():
    return html.Section(
        [
            html.P(
                "Provide just enough context (coursework, research, proprietary, or personal) "
                "so we can shape assistant guardrails without collecting your code."
            ),
            html.Div(
                [
                    _action("start-survey", "Start survey", "primary"),
                    _action("start-conversation", "Talk it through"),
                    _action("start-description", "Describe it in one go"),
                ],
                className="actions-row",
            ),
        ],
        className="landing",
    )


def question_input(field, q):
    """
    Input control for one survey question, pre-filled from the questionnaire.
    """
    current = q.to_json()[field]
    cid = {"type": "answer", "field": field}
    if field == "projectName":
        return dcc.Input(
            id=cid, value=current, debounce=True, placeholder="Untitled Project", className="textin"
        )
    if field == "dataExamples":
        return dcc.Textarea(
            id=cid,
            value=current,
            placeholder="e.g. data/patients.csv, .env, client_contracts/",
            className="textarea",
        )
    if field in MULTI_FIELDS:
        return dcc.Checklist(
            id=cid, options=_options(FIELD_OPTIONS[field]), value=list(current), className="choices"
        )
    return dcc.RadioItems(
        id=cid, options=_options(FIELD_OPTIONS[field]), value=current, className="choices"
    )


def survey_view(session, theme="light"):
    total = len(QUESTION_ORDER)
    progress = round(min(session.step, total) / total * 100)
    if session.step >= REVIEW_STEP:
        header = "Review & generate"
    else:
        header = f"Question {session.step + 1} / {total}"
    head = html.Div(
        [
            html.P(header, className="step-label"),
            html.Div(html.Div(style={"width": f"{progress}%"}, className="bar"), className="progress"),
        ],
        className="survey-head",
    )
    if session.step >= REVIEW_STEP:
        return html.Section([head, review_panel(session, theme)], className="survey")

    field = QUESTION_ORDER[session.step]
    meta = STEP_META[field]
    nav = [
        _action("back", "Back") if session.step > 0 else html.Span(),
        _action(
            "next", "Review answers" if session.step == total - 1 else "Next question", "primary"
        ),
    ]
    return html.Section(
        [
            head,
            html.Div(
                [
                    html.H2(meta["title"]),
                    html.P(meta["helper"], className="helper"),
                    question_input(field, session.questionnaire),
                    html.Div(nav, className="nav-row"),
                ],
                className="question-card",
            ),
        ],
        className="survey",
    )


def _status_badge(status):
    return {
        "loading": "Calling OpenAI…",
        "success": "Ready",
        "error": "Needs attention",
        "idle": "Awaiting run",
    }[status]


def review_panel(session, theme="light"):
    brief = build_brief(session.questionnaire)
    level = brief.assessment.level
    recs = brief.recommendations
    loading = session.is_pending("generate")
    return html.Div(
        [
            html.Div(
                [
                    html.H2(RISK_LABELS[level]["title"]),
                    html.P(RISK_LABELS[level]["blurb"]),
                    html.Div(
                        [html.Span("Risk score"), html.Strong(f"{brief.assessment.score}/{MAX_SCORE}")],
                        className="kpi",
                    ),
                    html.Div([html.Span(x, className="chip") for x in recs.focus_areas], className="chips"),
                    html.Div(
                        [
                            dcc.Graph(
                                figure=risk_gauge_figure(brief.assessment, theme),
                                style={"height": f"{GAUGE_H}px"},
                                config={"displaylogo": False, "responsive": False},
                            ),
                            dcc.Graph(
                                figure=breakdown_figure(score_breakdown(session.questionnaire), theme),
                                style={"height": f"{BREAKDOWN_H}px"},
                                config={"displaylogo": False, "responsive": False},
                            ),
                        ],
                        className="charts",
                    ),
                ],
                className="col",
            ),
            html.Div(
                [
                    html.H3("What the assistant should remember"),
                    html.Ul([html.Li(x) for x in recs.guardrails], className="guardrails"),
                    html.Div([html.Span(w, className="chip") for w in recs.watchwords], className="chips"),
                    html.H3("Draft preview"),
                    html.Pre(brief.preview, className="preview"),
                ],
                className="col",
            ),
            html.Div(
                [
                    html.H3("Generate the real AGENTS.md"),
                    html.Span(_status_badge(session.generation_status), className="badge"),
                    html.P(
                        "Your answers are sent to OpenAI and the finished file opens on the next screen.",
                        className="helper",
                    ),
                    _action(
                        "generate",
                        "Generating AGENTS.md..." if loading else "Generate AGENTS.md",
                        "primary",
                        disabled=loading,
                    ),
                    html.P(session.generation_error, className="error")
                    if session.generation_status == "error"
                    else None,
                ],
                className="col generate-col",
            ),
            html.Div(
                [
                    _action("back", "Edit answers"),
                    _action("restart", "Restart survey"),
                    _action("landing", "Back to landing"),
                ],
                className="nav-row",
            ),
        ],
        className="review",
    )


def inferred_summary(session, apply_label, with_landing=False):
    rows = [
        html.Div(
            [html.Span(STEP_META.get(key, {}).get("summary", key), className="k"),
             html.Span(_format_value(value), className="v")],
            className="summary-row",
        )
        for key, value in (session.inferred or {}).items()
        if value is not None
    ]
    if not rows:
        rows = [html.P("Nothing specific was inferred; defaults will be used.", className="helper")]
    actions = [_action("apply", apply_label, "primary")]
    if with_landing:
        actions.append(_action("landing", "Back to landing"))
    return html.Div(
        [
            html.H3("Inferred configuration"),
            html.Div(rows, className="summary"),
            html.Div(actions, className="nav-row"),
        ],
        className="inferred",
    )


def conversation_view(session):
    if session.extraction_status == "success" and session.inferred is not None:
        return html.Section(
            [
                html.P("Here's what I inferred from our conversation:"),
                inferred_summary(session, "Apply and generate AGENTS.md", with_landing=True),
            ],
            className="conversation",
        )
    typing = session.is_pending("followup")
    extracting = session.is_pending("extract")
    return html.Section(
        [
            html.Div(
                [html.Div(m.content, className=f"msg msg-{m.role}") for m in session.messages]
                + ([html.Div("…", className="msg msg-assistant typing")] if typing else []),
                className="chat-log",
            ),
            dcc.Textarea(
                id={"type": "text", "name": "chat"},
                placeholder="Type your message...",
                rows=2,
                disabled=typing or extracting,
                className="textarea",
            ),
            html.Div(
                [
                    _action("send", "Send", "primary", disabled=typing or extracting),
                    _action(
                        "extract",
                        "Extracting configuration..." if extracting else "Summarize into configuration",
                        disabled=len(session.messages) < 2 or typing or extracting,
                    ),
                    _action("landing", "Back to landing"),
                ],
                className="nav-row",
            ),
            html.P(session.extraction_error, className="error")
            if session.extraction_status == "error"
            else None,
        ],
        className="conversation",
    )


def description_view(session):
    inferring = session.is_pending("extract")
    children = [
        html.H2("Describe your project in your own words"),
        html.P(
            "Example: I'm building a Next.js app with Supabase for auth. The repo is public, but I "
            "store API keys in .env. I work with one collaborator and use an assistant daily.",
            className="helper",
        ),
        dcc.Textarea(
            id={"type": "text", "name": "description"},
            value=session.description,
            placeholder="Describe your project in 2-6 sentences...",
            rows=6,
            disabled=inferring,
            className="textarea",
        ),
        html.Div(
            [
                _action(
                    "infer",
                    "Inferring configuration..." if inferring else "Infer configuration",
                    "primary",
                    disabled=inferring,
                ),
                _action("landing", "Back to landing"),
            ],
            className="nav-row",
        ),
    ]
    if session.extraction_status == "error":
        children.append(html.P(session.extraction_error, className="error"))
    if session.extraction_status == "success" and session.inferred is not None:
        children.append(inferred_summary(session, "Apply and go to review"))
    return html.Section(children, className="description")


def result_view(session):
    brief = build_brief(session.questionnaire)
    title = RISK_LABELS[brief.assessment.level]["title"]
    return html.Section(
        [
            html.H2(brief.name),
            html.P(
                f"Generated with a {title.lower()} posture based on your answers. "
                "Paste it into your repo or share it with collaborators."
            ),
            html.Div(
                [
                    dcc.Clipboard(target_id="generated-doc", title="Copy file", className="clipboard"),
                    html.Button("Download .md", id="dl-md", n_clicks=0, className="secondary"),
                    html.Button("Download PDF", id="dl-pdf", n_clicks=0, className="secondary"),
                ],
                className="export-row",
            ),
            html.Pre(session.document, id="generated-doc", className="generated"),
            html.Div(
                [
                    _action("edit", "Edit answers"),
                    _action("restart", "Start new survey"),
                    _action("landing", "Back to landing"),
                ],
                className="nav-row",
            ),
        ],
        className="result",
    )


def _view_key(session):
    """
    Identity of what the view shows.

    On survey question screens the inputs already hold the answers, so answer
    edits must not rebuild the screen (that would drop focus mid-typing).
    """
    data = session.to_store()
    if session.mode == "survey" and session.step < REVIEW_STEP:
        data.pop("questionnaire")
    return json.dumps(data, sort_keys=True)


app.layout = html.Div(
    id="page-root",
    className="page theme-light",
    children=[
        dcc.Store(id="session-store", data=Session().to_store()),
        dcc.Store(id="view-key"),
        dcc.Store(id="effect-request"),
        dcc.Store(id="effect-result"),
        dcc.Store(id="theme-store", data="light"),
        dcc.Download(id="dl-md-out"),
        dcc.Download(id="dl-pdf-out"),
        html.Div(
            [
                html.H1("Tailored AGENTS.md for every coding context"),
                html.P(
                    "Answer a short survey about your coding environment. "
                    "We hand back a privacy brief for your AI coding assistant."
                ),
                html.Div(
                    [
                        html.Label("Dark mode"),
                        daq.BooleanSwitch(
                            id="theme-switch",
                            on=False,
                            color="#4f46e5",
                            className="theme-switch",
                        ),
                    ],
                    className="field",
                ),
            ],
            className="header",
        ),
        html.Div(id="view", children=landing_view()),
    ],
)


# -------- Callbacks ------------------
@app.callback(
    Output("view", "children"),
    Output("view-key", "data"),
    Input("session-store", "data"),
    Input("theme-store", "data"),
    State("view-key", "data"),
)
def render(data, theme, last_key):
    """
    Render the screen for the current session.

    Skipped (PreventUpdate) when nothing visible changed.
    """
    session = Session.from_store(data)
    key = f"{theme}|{_view_key(session)}"
    if key == last_key:
        raise dash.exceptions.PreventUpdate

    if session.mode == "survey":
        view = survey_view(session, theme or "light")
    elif session.mode == "conversation":
        view = conversation_view(session)
    elif session.mode == "description":
        view = description_view(session)
    elif session.mode == "result":
        view = result_view(session)
    else:
        view = landing_view()
    return view, key


def reduce_action(session, name, texts):
    """
    Map a button press onto its reducer.

    Args:
        session (Session): current state
        name (str): action name from the button id
        texts (dict): current values of free-text inputs by name

    Returns:
        tuple: (new session, effect request or None)
    """
    if name == "start-survey":
        return start(session, "survey"), None
    if name == "start-conversation":
        return start(session, "conversation"), None
    if name == "start-description":
        return start(session, "description"), None
    if name == "next":
        return next_step(session), None
    if name == "back":
        return previous_step(session), None
    if name == "restart":
        return restart(session), None
    if name == "landing":
        return return_to_landing(session), None
    if name == "edit":
        return edit_answers(session), None
    if name == "generate":
        return begin_generation(session)
    if name == "send":
        return send_message(session, texts.get("chat"))
    if name == "extract":
        return request_extraction(session)
    if name == "infer":
        return request_inference(session, texts.get("description"))
    if name == "apply":
        return apply_inferred(session)
    logger.warning("Unknown action %r", name)
    return session, None


@app.callback(
    Output("session-store", "data"),
    Output("effect-request", "data"),
    Input({"type": "action", "name": ALL}, "n_clicks"),
    Input({"type": "answer", "field": ALL}, "value"),
    State({"type": "text", "name": ALL}, "value"),
    State({"type": "text", "name": ALL}, "id"),
    State("session-store", "data"),
    prevent_initial_call=True,
)
def dispatch(_clicks, _answers, text_values, text_ids, data):
    """
    Turn a UI event into a new session snapshot and, optionally, an effect.

    Components created by a re-render also fire this callback; those carry
    zero clicks or an unchanged answer and are ignored.
    """
    trigger = ctx.triggered_id
    if not isinstance(trigger, dict) or not ctx.triggered:
        raise dash.exceptions.PreventUpdate
    value = ctx.triggered[0]["value"]
    session = Session.from_store(data)

    if trigger["type"] == "action":
        if not value:
            raise dash.exceptions.PreventUpdate
        texts = {tid["name"]: v for tid, v in zip(text_ids or [], text_values or [])}
        new, effect = reduce_action(session, trigger["name"], texts)
    else:
        new, effect = set_answer(session, trigger["field"], value), None

    if new == session and effect is None:
        raise dash.exceptions.PreventUpdate
    return new.to_store(), effect if effect is not None else dash.no_update


@app.callback(
    Output("effect-result", "data"),
    Input("effect-request", "data"),
    prevent_initial_call=True,
)
def execute_effect(effect):
    """
    Perform the external call described by an effect request.

    Runs outside the session: the result is folded in by `apply_result`,
    against whatever the session is by the time the call returns.
    """
    if not effect:
        raise dash.exceptions.PreventUpdate
    return run_effect(effect, SETTINGS)


@app.callback(
    Output("session-store", "data", allow_duplicate=True),
    Input("effect-result", "data"),
    State("session-store", "data"),
    prevent_initial_call=True,
)
def apply_result(result, data):
    if not result:
        raise dash.exceptions.PreventUpdate
    session = Session.from_store(data)
    new = receive_result(session, result)
    if new == session:
        raise dash.exceptions.PreventUpdate
    return new.to_store()


# Exports
@app.callback(
    Output("dl-md-out", "data"),
    Input("dl-md", "n_clicks"),
    State("session-store", "data"),
    prevent_initial_call=True,
)
def download_markdown(n, data):
    """
    Download the generated brief as AGENTS-<project>.md.
    """
    session = Session.from_store(data)
    if not n or not session.document:
        raise dash.exceptions.PreventUpdate
    name = session.questionnaire.display_name
    return dcc.send_string(session.document, export_filename(name, "md"))


@app.callback(
    Output("dl-pdf-out", "data"),
    Input("dl-pdf", "n_clicks"),
    State("session-store", "data"),
    prevent_initial_call=True,
)
def download_pdf(n, data):
    """
    Download the generated brief as a PDF with the score contributions table.
    """
    session = Session.from_store(data)
    if not n or not session.document:
        raise dash.exceptions.PreventUpdate
    brief = build_brief(session.questionnaire)
    breakdown = score_breakdown(session.questionnaire)
    return dcc.send_bytes(
        lambda b: write_pdf_bytes(b, brief.name, session.document, brief.assessment, breakdown),
        export_filename(brief.name, "pdf"),
    )


# Theme toggle -> update page class and store
@app.callback(
    Output("page-root", "className"),
    Output("theme-store", "data"),
    Input("theme-switch", "on"),
)
def apply_theme(is_on):
    """
    Toggle the page theme class and store the current theme value.

    Args:
        is_on (bool): The on/off state of the theme switch.

    Returns:
        tuple: A pair of (page class name, theme name).
    """
    theme = "dark" if is_on else "light"
    return f"page theme-{theme}", theme


# ---------- Main -------------------
if __name__ == "__main__":
    app.run(debug=False)
