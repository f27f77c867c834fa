"""Developer tooling: debug instrumentation and the headless replay CLI."""
