"""CSS for the agent-mux viewer."""

APP_CSS = """
Screen {
    background: #000000;
    overflow: hidden;
    scrollbar-size: 0 0;
}

#main {
    height: 1fr;
}

#pane-list {
    width: 25%;
    min-width: 20;
    height: 1fr;
    border-right: vkey #444444;
    background: #000000;
    scrollbar-size: 0 0;
}

#pane-list > .datatable--cursor {
    background: #444444;
    color: #ffffff;
    text-style: bold;
}

#preview {
    width: 1fr;
    height: 1fr;
    background: #000000;
    scrollbar-size: 0 0;
}

#error {
    height: auto;
    color: #d70000;
    padding: 0 1;
    display: none;
}

#error.visible {
    display: block;
}

#empty {
    color: #808080;
    padding: 1 2;
    display: none;
}

#empty.visible {
    display: block;
}
"""
