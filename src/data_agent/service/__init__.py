"""HTTP service: the streaming chat endpoint and shared documents."""
