import streamlit as st
import pandas as pd
import requests
import base64

# ========================
# CONFIG
# ========================
BASE_URL = "http://127.0.0.1:8000"

CHART_TYPES = ["bar", "line", "pie", "scatter", "area", "radar"]
SORT_ORDERS = ["none", "asc", "desc"]
EXPORT_FORMATS = {
    "Excel data": ("excel", "xlsx"),
    "Images (ZIP)": ("images", "zip"),
    "PDF": ("pdf", "pdf"),
    "Long image": ("long-image", "png"),
}

st.set_page_config(
    page_title="Excel Chart Studio - Streamlit",
    layout="wide"
)

# ========================
# STATE VARIABLES
# ========================
for key, default in {
    "token": None,
    "username": None,
    "session_id": None,
    "sheets": [],
    "file_name": None,
}.items():
    if key not in st.session_state:
        st.session_state[key] = default


def api(method: str, path: str, **kwargs):
    headers = kwargs.pop("headers", {})
    if st.session_state.token:
        headers["Authorization"] = f"Bearer {st.session_state.token}"
    return requests.request(method, f"{BASE_URL}{path}", headers=headers, **kwargs)


def show_image(image_base64, width=None):
    if image_base64:
        st.image(base64.b64decode(image_base64), width=width)


# Title
st.title("Excel Chart Studio (Streamlit Version)")

st.markdown("""
Sign in → upload an Excel file → preview sheets → build and style charts →
lock the ones you like, save them as **templates** and export them.
""")

# 0. ACCOUNT
with st.sidebar:
    st.header("Account")
    if st.session_state.token:
        st.write(f"Signed in as **{st.session_state.username}**")
        if st.button("Log out"):
            api("POST", "/api/logout")
            st.session_state.token = None
            st.session_state.username = None
            st.session_state.session_id = None
            st.rerun()
    else:
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        col_login, col_register = st.columns(2)
        if col_login.button("Log in"):
            resp = api("POST", "/api/login", json={"username": username, "password": password})
            if resp.status_code != 200:
                st.error(resp.json().get("message", resp.text))
            else:
                st.session_state.token = resp.json()["token"]
                st.session_state.username = username
                st.rerun()
        if col_register.button("Register"):
            resp = api("POST", "/api/register", json={"username": username, "password": password})
            if resp.status_code != 201:
                st.error(resp.json().get("message", resp.text))
            else:
                st.success("Registered, you can log in now.")

if not st.session_state.token:
    st.info("Log in to start.")
    st.stop()

# 1. FILE UPLOAD
st.header("1. Upload Excel File")

uploaded_file = st.file_uploader("Upload your Excel file", type=["xlsx", "xls"])

if uploaded_file is not None:
    if st.button("Upload & Process File"):
        with st.spinner("Uploading..."):
            files = {"file": (uploaded_file.name, uploaded_file.getvalue())}

            resp = api("POST", "/upload/excel", files=files)

            if resp.status_code != 200:
                st.error(f"Upload failed: {resp.text}")
            else:
                data = resp.json()
                st.session_state.session_id = data["session_id"]
                st.session_state.sheets = data["sheets"]
                st.session_state.file_name = data["file_name"]

                st.success("File uploaded successfully!")

if not st.session_state.session_id:
    st.stop()

sid = st.session_state.session_id

# 2. SHEET PREVIEW
st.header("2. Preview")

sheet_names = [s["sheet_name"] for s in st.session_state.sheets]
selected_sheet = st.selectbox("Select a sheet", sheet_names)
api("POST", f"/workspace/{sid}/sheet", json={"sheet_name": selected_sheet})

if st.button("Load Preview"):
    preview_req = {
        "session_id": sid,
        "sheet_name": selected_sheet,
        "n_rows": 20
    }
    prev_res = api("POST", "/data/preview", json=preview_req).json()

    if "rows" in prev_res:
        st.subheader("Preview (first 20 rows)")
        df_prev = pd.DataFrame(prev_res["rows"], columns=prev_res["columns"])
        st.dataframe(df_prev, use_container_width=True)

# 3. CHARTS
st.header("3. Charts")

state = api("GET", f"/workspace/{sid}").json()
headers = next((s["headers"] for s in st.session_state.sheets if s["sheet_name"] == selected_sheet), [])

new_type = st.selectbox("Chart type", CHART_TYPES, key="new_chart_type")
if st.button("Add chart"):
    api("POST", f"/workspace/{sid}/charts", json={"chart_type": new_type})
    st.rerun()

for chart in state.get("activeCharts", []):
    config = chart["config"]
    options = config.get("options", {})
    with st.expander(f"{config['title']} ({config['type']})", expanded=True):
        left, right = st.columns([1, 2])
        with left:
            title = st.text_input("Title", config["title"], key=f"title_{chart['id']}")
            fields = [""] + headers
            x_field = config.get("xAxis", {}).get("field", "")
            x_field = st.selectbox("X axis", fields, index=fields.index(x_field) if x_field in fields else 0, key=f"x_{chart['id']}")
            current_series = [s["field"] for s in config.get("series", []) if s.get("field") in headers]
            series = st.multiselect("Series", headers, default=current_series, key=f"s_{chart['id']}")
            count_mode = st.checkbox("Count occurrences", bool(options.get("countMode")), key=f"c_{chart['id']}")
            sort_order = st.selectbox("Sort", SORT_ORDERS, index=SORT_ORDERS.index(options.get("sortOrder") or "none"), key=f"o_{chart['id']}")
            show_labels = st.checkbox("Data labels", bool(options.get("showDataLabels")), key=f"l_{chart['id']}")

            if st.button("Apply", key=f"apply_{chart['id']}"):
                new_config = {
                    **config,
                    "title": title,
                    "xAxis": {"field": x_field, "title": x_field},
                    "yAxis": {"field": series[0] if series else "", "title": series[0] if series else ""},
                    "series": [{"field": f, "name": f} for f in series],
                    "options": {**options, "countMode": count_mode, "sortOrder": sort_order, "showDataLabels": show_labels},
                }
                api("PUT", f"/workspace/{sid}/charts/{chart['id']}", json={"config": new_config})
                st.rerun()

            presets = api("GET", "/workspace/style-presets", params={"chart_type": config["type"]}).json()
            preset_names = {p["name"]: p["id"] for p in presets}
            if preset_names:
                preset = st.selectbox("Style preset", list(preset_names), key=f"p_{chart['id']}")
                if st.button("Apply style", key=f"style_{chart['id']}"):
                    api("POST", f"/workspace/{sid}/charts/{chart['id']}/style", json={"preset_id": preset_names[preset]})
                    st.rerun()

            col_lock, col_delete = st.columns(2)
            if col_lock.button("Lock", key=f"lock_{chart['id']}"):
                api("POST", f"/workspace/{sid}/charts/{chart['id']}/lock")
                st.rerun()
            if col_delete.button("Delete", key=f"del_{chart['id']}"):
                api("DELETE", f"/workspace/{sid}/charts/{chart['id']}")
                st.rerun()

        with right:
            image = api("GET", f"/workspace/{sid}/charts/{chart['id']}/image").json()
            show_image(image.get("image_base64"))

# 4. LOCKED CHARTS
st.header("4. Locked Charts")

locked = state.get("lockedCharts", [])
if not locked:
    st.write("No locked charts yet.")

cols = st.columns(2)
for i, item in enumerate(locked):
    with cols[i % 2]:
        st.markdown(f"**{item['title']}**")
        image = api("GET", f"/workspace/{sid}/locked/{item['id']}/image").json()
        show_image(image.get("image_base64"), width=450)
        pre = st.text_area("Analysis before the chart", key=f"pre_{item['id']}")
        post = st.text_area("Analysis after the chart", key=f"post_{item['id']}")
        col_save, col_remove = st.columns(2)
        if col_save.button("Save text", key=f"save_{item['id']}"):
            api("PUT", f"/workspace/{sid}/locked/{item['id']}/text", json={"pre_analysis": pre, "post_analysis": post})
        if col_remove.button("Remove", key=f"rm_{item['id']}"):
            api("DELETE", f"/workspace/{sid}/locked/{item['id']}")
            st.rerun()

if locked:
    st.subheader("Export")
    export_label = st.selectbox("Format", list(EXPORT_FORMATS))
    kind, extension = EXPORT_FORMATS[export_label]
    resp = api("GET", f"/workspace/{sid}/export/{kind}")
    if resp.status_code == 200:
        st.download_button("Download", resp.content, file_name=f"locked_charts.{extension}")
    else:
        st.error(f"Export failed: {resp.text}")

# 5. TEMPLATES
st.header("5. Templates")

with st.form("new_template"):
    name = st.text_input("Template name")
    description = st.text_area("Description")
    if st.form_submit_button("Save locked charts as template"):
        resp = api("POST", f"/workspace/{sid}/templates", json={"name": name, "description": description})
        if resp.status_code != 201:
            st.error(resp.json().get("message", resp.text))
        else:
            st.success("Template saved!")
            st.rerun()

for template in state.get("templates", []):
    st.markdown(f"**{template['name']}** ({template['charts']} chart(s))")
    st.caption(template["description"])
    strategy = st.radio("Header matching", ["exact", "fuzzy", "manual"], horizontal=True, key=f"strategy_{template['id']}")
    mappings = {}
    if strategy == "manual":
        full = next((t for t in api("GET", "/api/templates").json() if t["id"] == template["id"]), None)
        originals = sorted({h for c in (full or {}).get("charts", []) for h in c.get("originalHeaders", [])})
        for original in originals:
            target = st.selectbox(f"{original} →", [""] + headers, key=f"map_{template['id']}_{original}")
            if target:
                mappings[original] = target
    col_apply, col_remove = st.columns(2)
    if col_apply.button("Apply to current sheet", key=f"tpl_{template['id']}"):
        api("POST", f"/workspace/{sid}/templates/{template['id']}/apply", json={"match_strategy": strategy, "header_mappings": mappings or None})
        st.rerun()
    if col_remove.button("Delete template", key=f"tpl_del_{template['id']}"):
        api("DELETE", f"/workspace/{sid}/templates/{template['id']}")
        st.rerun()
