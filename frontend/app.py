from dotenv import load_dotenv

load_dotenv(".env.local"); load_dotenv()  # also loads .env if present

# app.py
import base64
import json
import os
from urllib.parse import quote

import requests
import streamlit as st

st.set_page_config(page_title="Template Auto-Fill", layout="wide")

BACKEND = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

# A small demo roster so the editor can be tried without a host application
DEMO_SUBJECT = {
    "firstName": "Anna",
    "lastName": "Schmidt",
    "dateOfBirth": "1990-05-02",
    "address": "12 Elm Street",
    "city": "Springfield",
    "state": "IL",
    "zipCode": "62701",
    "phone": "555-0100",
    "email": "anna@example.com",
    "idType": "drivers_license",
}
DEMO_AUTHORITY = {
    "firstName": "Jonny",
    "lastName": "Kramer",
    "licenseNumber": "LIC-4411",
    "npiNumber": "1234567890",
}


def _api(method: str, path: str, **kwargs):
    r = requests.request(method, f"{BACKEND}{path}", timeout=120, **kwargs)
    if not r.ok:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        st.error(f"{method} {path} failed: {detail}")
        return None
    return r


def _store(payload):
    if payload is not None:
        st.session_state["autofill"] = payload


# ------------- Sidebar: template + datasets -------------
st.sidebar.title("Template")

template_url = st.sidebar.text_input("Template URL or path")
uploaded = st.sidebar.file_uploader("…or upload a PDF", type=["pdf"])
subject_text = st.sidebar.text_area("Subject record (JSON)", json.dumps(DEMO_SUBJECT, indent=2), height=220)
authority_text = st.sidebar.text_area("Authority record (JSON)", json.dumps(DEMO_AUTHORITY, indent=2), height=160)

if st.sidebar.button("Load template"):
    try:
        body = {"subject": json.loads(subject_text), "authority": json.loads(authority_text)}
    except json.JSONDecodeError as exc:
        st.sidebar.error(f"Invalid JSON: {exc}")
        body = None
    if body is not None:
        if uploaded is not None:
            body["template_base64"] = base64.b64encode(uploaded.getvalue()).decode("ascii")
        else:
            body["template_url"] = template_url
        r = _api("POST", "/autofill/sessions", json=body)
        if r is not None:
            _store(r.json())
            st.session_state.pop("download", None)

state = st.session_state.get("autofill")

# ------------- Main: editor -------------
st.title("Template Auto-Fill")

if not state:
    st.info("Load a template from the sidebar to start.")
    st.stop()

sid = state["session_id"]
st.caption(f"Session `{sid[:8]}` · mode **{state['mode']}** · {state['page_count']} page(s)")

left, right = st.columns([2, 3])

with left:
    if state["mode"] == "interactive":
        st.subheader("Form fields")
        for field in state["interactive_fields"]:
            label = field["name"] + ("" if field["matched"] else " (unmapped)")
            new_value = st.text_input(label, value=field["value"], key=f"acro-{field['name']}")
            if new_value != field["value"]:
                r = _api("PUT", f"/autofill/sessions/{sid}/fields/{quote(field['name'], safe='')}", json={"value": new_value})
                if r is not None:
                    _store(r.json())
    else:
        st.subheader("Detected fields")
        page_fields = [f for f in state["fields"] if f["page"] == state["current_page"]]
        if not page_fields:
            st.caption("No placeholders on this page.")
        for field in page_fields:
            new_value = st.text_input(field["token"], value=field["value"], key=f"field-{field['unique_key']}")
            if new_value != field["value"]:
                r = _api("PUT", f"/autofill/sessions/{sid}/fields/{quote(field['unique_key'], safe='')}", json={"value": new_value})
                if r is not None:
                    _store(r.json())

        groups = {}
        for radio in state["radios"]:
            groups.setdefault(radio["group"], [])
            if radio["option"] not in groups[radio["group"]]:
                groups[radio["group"]].append(radio["option"])
        if groups:
            st.subheader("Choices")
        for group, options in groups.items():
            current = (state["selected"].get(group) or [None])[0]
            index = options.index(current) if current in options else None
            choice = st.radio(group, options, index=index, key=f"radio-{group}", horizontal=True)
            if choice is not None and choice != current:
                r = _api("POST", f"/autofill/sessions/{sid}/radios/toggle", json={"group": group, "option": choice})
                if r is not None:
                    _store(r.json())

    st.divider()
    if st.button("Build PDF"):
        r = _api("POST", f"/autofill/sessions/{sid}/output")
        if r is not None:
            st.session_state["download"] = r.content
    if st.session_state.get("download"):
        st.download_button(
            "Download",
            data=st.session_state["download"],
            file_name=state["suggested_filename"],
            mime="application/pdf",
        )

with right:
    nav_prev, nav_label, nav_next = st.columns([1, 2, 1])
    page = state["current_page"]
    if nav_prev.button("◀", disabled=page <= 1):
        page -= 1
    if nav_next.button("▶", disabled=page >= state["page_count"]):
        page += 1
    if page != state["current_page"]:
        r = _api("POST", f"/autofill/sessions/{sid}/page", json={"page": page})
        if r is not None:
            _store(r.json())
            st.rerun()
    nav_label.markdown(f"**{page} / {state['page_count']}**")
    filled = st.toggle("Show filled values", value=False)

    r = _api("GET", f"/autofill/sessions/{sid}/preview", params={"page": page, "filled": filled})
    if r is not None:
        st.image(r.content, use_container_width=True)
