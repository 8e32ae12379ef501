"""Task spec files: markdown body plus optional YAML frontmatter."""

from pathlib import Path

import frontmatter


def read_spec(file_path: Path) -> tuple[str, dict]:
    """Parse a task file.

    Returns:
        (content, metadata) where content is the spec body and metadata holds
        optional debate overrides: rounds (int), threshold (float),
        agents (str, "backend:persona[:model],..."), synthesis (bool).
        If there is no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def write_spec(file_path: Path, content: str) -> None:
    """Replace the spec body, keeping any frontmatter the file already has."""
    metadata: dict = {}
    if file_path.exists():
        metadata = dict(frontmatter.load(str(file_path)).metadata)
    if metadata:
        text = frontmatter.dumps(frontmatter.Post(content, **metadata))
    else:
        text = content
    file_path.write_text(text.rstrip("\n") + "\n", encoding="utf-8")
