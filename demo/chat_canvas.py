"""
Run one chat pass over a JSON Canvas file.

    python demo/chat_canvas.py notes/board.canvas NODE_ID [NODE_ID ...]

Needs an OpenAI-compatible server (vLLM, Ollama) at CANVASCHAT_API_URL,
default http://localhost:8000. Settings are read from CANVASCHAT_* variables
or a .env file.
"""
import argparse
import logging
import sys

from canvaschat import CanvasChat, CanvasFileStore, CanvasChatError, ChatConfig


def main():
    parser = argparse.ArgumentParser(description="Chat with an LLM using selected canvas nodes")
    parser.add_argument("canvas", help="path to the .canvas file")
    parser.add_argument("nodes", nargs="+", help="ids of the selected nodes")
    parser.add_argument("--vault", default=None, help="directory file nodes are relative to")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = ChatConfig.from_env()
    chat = CanvasChat(CanvasFileStore(args.canvas, vault_dir=args.vault), config=config)
    try:
        created = chat.handle_chat(args.nodes)
    except CanvasChatError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Created {len(created)} response node(s): {', '.join(created)}")

if __name__ == "__main__":
    main()
