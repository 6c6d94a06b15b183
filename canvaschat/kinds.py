# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
# Node kinds as the host canvas reports them
NODE_TEXT = "text"
NODE_DOCUMENT = "document"      # file node backed by a readable document
NODE_IMAGE = "image"

NODE_KINDS = (NODE_TEXT, NODE_DOCUMENT, NODE_IMAGE)

# Roles assigned by the classifier
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_ASSISTANT_PLACEHOLDER = "assistant_placeholder"
ROLE_CONTEXT = "context"

# Chat message roles
MESSAGE_SYSTEM = "system"
MESSAGE_USER = "user"
MESSAGE_ASSISTANT = "assistant"

# File extensions of image nodes; every other file is a document
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp")

# Connection sides used when appending a response node
SIDE_TOP = "top"
SIDE_BOTTOM = "bottom"
