from __future__ import annotations

import uuid

import streamlit as st

from src.client.chat_client import ChatClient
from src.client.session_store import MappingSessionStore

st.set_page_config(page_title="Chat with Us", page_icon="💬", layout="centered")

DEFAULT_API_BASE_URL = "http://localhost:8000"
ERROR_REPLY = "Sorry, I encountered an error. Please try again."


def _session_id() -> str:
    if "chat_session_id" not in st.session_state:
        st.session_state["chat_session_id"] = uuid.uuid4().hex
    return st.session_state["chat_session_id"]


def _client() -> ChatClient:
    base_url = st.session_state.get("api_base_url", DEFAULT_API_BASE_URL)
    return ChatClient(base_url=base_url, store=MappingSessionStore(st.session_state))


def _chat_interface() -> None:
    st.header("Chat with Us")
    client = _client()
    session_id = _session_id()

    history = client.history(session_id)
    if not history:
        st.caption("Send a message to start the conversation")
    for message in history:
        with st.chat_message(message.role):
            st.markdown(message.content or "")

    error = st.session_state.get("chat_error")
    if error:
        st.error(error)

    user_prompt = st.chat_input("Type your message...")
    if not user_prompt:
        return

    with st.chat_message("user"):
        st.markdown(user_prompt)

    with st.spinner("Thinking..."):
        result = client.send(session_id, user_prompt)

    if result.is_error:
        st.session_state["chat_error"] = result.error
        with st.chat_message("assistant"):
            st.markdown(ERROR_REPLY)
        st.error(result.error)
        return

    st.session_state.pop("chat_error", None)
    with st.chat_message("assistant"):
        st.markdown(result.content or "")


def _sidebar_controls() -> None:
    st.sidebar.title("Session Settings")
    st.session_state["api_base_url"] = st.sidebar.text_input(
        "API base URL",
        st.session_state.get("api_base_url", DEFAULT_API_BASE_URL),
    )
    if st.sidebar.button("Clear chat"):
        _client().clear(_session_id())
        st.session_state.pop("chat_error", None)
        st.rerun()


def main() -> None:
    _sidebar_controls()
    _chat_interface()


if __name__ == "__main__":
    main()
