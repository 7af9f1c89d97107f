"""
LexStudy Streamlit UI

Interactive interface for uploading legal material, searching it, chatting
with the study assistant and practicing with generated questions.
"""

import os

import requests
import streamlit as st

API_URL = os.getenv("API_URL", "http://localhost:8000")
TIMEOUT = 300

st.set_page_config(page_title="LexStudy", page_icon="⚖️")

st.title("⚖️ LexStudy")
st.markdown("**Asistente de estudio de Derecho chileno con RAG**")

# Health check
try:
    response = requests.get(f"{API_URL}/health", timeout=2)
    if response.ok:
        data = response.json()
        st.success(f"✓ API Connected ({data.get('status', 'unknown')})")
        if not data.get("ollama_available"):
            st.warning("Ollama no disponible: el análisis usará valores por defecto")
    else:
        st.error("❌ API unreachable")
except requests.RequestException as e:
    st.error(f"❌ API Connection Error: {e}")

st.markdown("---")

upload_tab, search_tab, chat_tab, quiz_tab = st.tabs(
    ["📄 Documentos", "🔎 Búsqueda", "💬 Tutor", "📝 Preguntas"]
)

with upload_tab:
    uploaded = st.file_uploader("Sube un documento", type=["txt", "md", "pdf", "docx", "html"])
    generate = st.checkbox("Generar preguntas", value=True)
    if uploaded is not None and st.button("Procesar documento"):
        with st.spinner("Procesando..."):
            resp = requests.post(
                f"{API_URL}/api/v1/documents/upload",
                files={"file": (uploaded.name, uploaded.getvalue(), uploaded.type)},
                data={"generate_questions": str(generate).lower()},
                timeout=TIMEOUT,
            )
        if resp.ok:
            result = resp.json()
            st.success(result["message"])
            st.json(result)
        else:
            st.error(f"Error {resp.status_code}: {resp.text}")

    with st.expander("O pega el texto directamente"):
        manual_title = st.text_input("Título (opcional)")
        manual_text = st.text_area("Contenido", height=200)
        if manual_text.strip() and st.button("Procesar texto"):
            with st.spinner("Procesando..."):
                resp = requests.post(
                    f"{API_URL}/api/v1/documents/upload-text",
                    json={
                        "content": manual_text,
                        "title": manual_title or None,
                        "generate_questions": generate,
                    },
                    timeout=TIMEOUT,
                )
            if resp.ok:
                st.success(resp.json()["message"])
            else:
                st.error(f"Error {resp.status_code}: {resp.text}")

    st.subheader("Documentos indexados")
    resp = requests.get(f"{API_URL}/api/v1/documents", timeout=10)
    if resp.ok:
        for doc in resp.json()["documents"]:
            st.write(
                f"**{doc['title']}** · {doc['document_type']} · "
                f"{', '.join(doc['legal_areas'])} · {doc['num_chunks']} fragmentos"
            )

with search_tab:
    query = st.text_input("Consulta")
    limit = st.slider("Resultados", 1, 20, 5)
    if query and st.button("Buscar"):
        resp = requests.post(
            f"{API_URL}/api/v1/documents/search",
            json={"query": query, "limit": limit},
            timeout=60,
        )
        if resp.ok:
            for result in resp.json()["results"]:
                title = result["metadata"].get("title", "Sin título")
                st.markdown(f"**{title}** (relevancia {result['score']:.2f})")
                st.write(result["content"])
        else:
            st.error(f"Error {resp.status_code}: {resp.text}")

with chat_tab:
    if "history" not in st.session_state:
        st.session_state.history = []
        st.session_state.session_id = None

    for message in st.session_state.history:
        with st.chat_message(message["role"]):
            st.write(message["content"])

    prompt = st.chat_input("Pregunta algo sobre Derecho chileno")
    if prompt:
        with st.chat_message("user"):
            st.write(prompt)
        resp = requests.post(
            f"{API_URL}/api/v1/study/chat",
            json={
                "message": prompt,
                "session_id": st.session_state.session_id,
                "history": st.session_state.history,
            },
            timeout=TIMEOUT,
        )
        if resp.ok:
            data = resp.json()
            st.session_state.session_id = data["session_id"]
            st.session_state.history.append({"role": "user", "content": prompt})
            st.session_state.history.append({"role": "assistant", "content": data["response"]})
            with st.chat_message("assistant"):
                st.write(data["response"])
                st.caption(f"{data['sources_used']} fragmentos usados como contexto")
        else:
            st.error(f"Error {resp.status_code}: {resp.text}")

with quiz_tab:
    areas = st.text_input("Áreas legales (separadas por coma)", "Derecho Civil")
    difficulty = st.selectbox("Dificultad", ["Basic", "Intermediate", "Advanced"], index=1)
    count = st.number_input("Cantidad", min_value=1, max_value=20, value=5)
    if st.button("Generar preguntas"):
        with st.spinner("Generando..."):
            resp = requests.post(
                f"{API_URL}/api/v1/questions/generate",
                json={
                    "legal_areas": [a.strip() for a in areas.split(",") if a.strip()],
                    "difficulty": difficulty,
                    "count": int(count),
                },
                timeout=TIMEOUT,
            )
        if resp.ok:
            st.session_state.questions = resp.json()["questions"]
        else:
            st.error(f"Error {resp.status_code}: {resp.text}")

    for number, question in enumerate(st.session_state.get("questions", []), start=1):
        st.markdown(f"**{number}. {question['question_text']}**")
        labels = {option["id"]: option["text"] for option in question["options"]}
        choice = st.radio(
            "Respuesta",
            list(labels),
            format_func=lambda key, labels=labels: f"{key}) {labels[key]}",
            key=f"answer-{question['id']}",
        )
        if st.button("Responder", key=f"submit-{question['id']}"):
            resp = requests.post(
                f"{API_URL}/api/v1/questions/submit-answer",
                json={
                    "user_answer": choice,
                    "correct_answer": question["correct_answer"],
                    "explanation": question["explanation"],
                },
                timeout=10,
            )
            if resp.ok:
                graded = resp.json()
                if graded["is_correct"]:
                    st.success("¡Correcto!")
                else:
                    st.error(f"Incorrecto. Respuesta correcta: {graded['correct_answer']}")
                st.info(graded["explanation"])
