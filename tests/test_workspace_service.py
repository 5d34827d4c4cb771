import pytest

from claw_dashboard.errors import ForbiddenError, NotFoundError, ValidationError
from claw_dashboard.services.workspace_service import is_allowed_path


@pytest.mark.parametrize("path, allowed", [
    ("SOUL.md", True),
    ("memory/2026-01-31.md", True),
    ("./AGENTS.md", True),
    ("notes.txt", False),
    ("memory/sub/deep.md", False),
    ("skills/x/SKILL.md", False),
    ("../secrets.md", False),
    ("/etc/passwd.md", False),
    ("memory/../../outside.md", False),
    ("", False),
])
def test_allowed_paths(path, allowed):
    assert is_allowed_path(path) is allowed


async def test_write_then_read(env):
    result = await env.workspace.write_file("memory/2026-02-01.md", "# Feb 1\n")

    assert (result.path, result.size) == ("memory/2026-02-01.md", 8)
    assert (env.paths.workspace / "memory" / "2026-02-01.md").read_text() == "# Feb 1\n"
    assert (await env.workspace.read_file("memory/2026-02-01.md")).content == "# Feb 1\n"


async def test_file_errors(env):
    with pytest.raises(ValidationError, match="path query param is required"):
        await env.workspace.read_file(None)
    with pytest.raises(ForbiddenError):
        await env.workspace.read_file("../../etc/passwd")
    with pytest.raises(ForbiddenError):
        await env.workspace.write_file("config.json", "{}")
    with pytest.raises(NotFoundError):
        await env.workspace.read_file("MISSING.md")


def _skill(root, dirname, content):
    skill_dir = root / dirname
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(content, encoding="utf-8")


async def test_skills_parse_and_dedupe(env):
    ws_skills = env.paths.workspace / "skills"
    _skill(ws_skills, "weather", '---\nname: weather\ndescription: "Forecasts via wttr.in"\n---\n# Weather\n')
    _skill(ws_skills, "notes", "# Apple Notes\nManage notes.\n")
    _skill(ws_skills, "bare", "no heading here\n")
    _skill(env.paths.system_skills, "weather", "---\nname: weather\ndescription: system copy\n---\n")
    _skill(env.paths.system_skills, "github", "---\ndescription: gh CLI\n---\n")

    skills = {s.name: s for s in await env.workspace.list_skills()}

    assert sorted(skills) == ["Apple Notes", "bare", "github", "weather"]
    assert skills["weather"].description == "Forecasts via wttr.in"
    assert skills["weather"].path == "skills/weather/SKILL.md"
    assert skills["github"].description == "gh CLI"
    assert skills["Apple Notes"].description == ""


async def test_skills_without_directories(env):
    assert await env.workspace.list_skills() == []


async def test_logs_newest_first(env):
    memory = env.paths.workspace / "memory"
    memory.mkdir(parents=True)
    (memory / "2026-01-30.md").write_text("older")
    (memory / "2026-01-31.md").write_text("newer")
    (memory / "scratch.txt").write_text("ignored")

    logs = await env.workspace.list_logs()

    assert [(l.date, l.filename, l.content) for l in logs] == [
        ("2026-01-31", "2026-01-31.md", "newer"),
        ("2026-01-30", "2026-01-30.md", "older"),
    ]
