"""Storage layer for tt using markdown files with YAML frontmatter.

Each task lives in ``<data_dir>/tasks/<id>.md``: the frontmatter holds the
task fields and the markdown body holds the description. Areas are kept in
``<data_dir>/areas.yaml``.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional

import frontmatter
import yaml

from .area import Area
from .config import ConfigModel
from .exceptions import ConstraintError, NotFoundError, StorageError
from .todo import Task, TaskType

logger = logging.getLogger(__name__)

TASK_FILE_RE = re.compile(r"^(\d+)\.md$")


class TaskStore(ABC):
    """Repository interface the domain code depends on."""

    @abstractmethod
    def get_by_id(self, task_id: int) -> Task:
        """Return the task, raising NotFoundError if it does not exist."""

    @abstractmethod
    def create(self, task: Task) -> int:
        """Persist a new task, assign and return its id."""

    @abstractmethod
    def update(self, task: Task) -> None:
        """Persist changes to an existing task, raising NotFoundError if unknown."""

    @abstractmethod
    def delete(self, task_id: int) -> None:
        """Remove a task and any children, raising NotFoundError if unknown."""

    @abstractmethod
    def list_tasks(self, predicate: Optional[Callable[[Task], bool]] = None) -> List[Task]:
        """Return all tasks (optionally filtered), ordered by id."""

    def children_of(self, container_id: int) -> List[Task]:
        return self.list_tasks(lambda t: t.container_id == container_id)

    def add_tag(self, task_id: int, tag: str) -> Task:
        task = self.get_by_id(task_id)
        task.add_tag(tag)
        self.update(task)
        return task

    def remove_tag(self, task_id: int, tag: str) -> Task:
        task = self.get_by_id(task_id)
        task.remove_tag(tag)
        self.update(task)
        return task

    def list_tags(self) -> Dict[str, int]:
        """Return every tag in use with the number of open tasks carrying it."""
        counts: Dict[str, int] = {}
        for task in self.list_tasks():
            for tag in task.tags:
                counts.setdefault(tag, 0)
                if not task.is_done:
                    counts[tag] += 1
        return dict(sorted(counts.items()))

    def get_project_by_name(self, name: str) -> Task:
        """Find an open project by title (case-insensitive)."""
        wanted = name.strip().lower()
        for task in self.list_tasks(lambda t: t.is_container and not t.is_done):
            if task.title.lower() == wanted:
                return task
        raise NotFoundError("project", name)

    @abstractmethod
    def create_area(self, name: str) -> Area:
        """Create a named area, raising ConstraintError on duplicates."""

    @abstractmethod
    def list_areas(self) -> List[Area]:
        """Return all areas ordered by name."""

    @abstractmethod
    def rename_area(self, name: str, new_name: str) -> Area:
        """Rename an area, raising ConstraintError if the new name is taken."""

    @abstractmethod
    def delete_area(self, name: str) -> Area:
        """Delete an area and move its tasks out of it."""

    def get_area(self, area_id: int) -> Area:
        for area in self.list_areas():
            if area.id == area_id:
                return area
        raise NotFoundError("area", area_id)

    def get_area_by_name(self, name: str) -> Area:
        wanted = name.strip().lower()
        for area in self.list_areas():
            if area.name.lower() == wanted:
                return area
        raise NotFoundError("area", name)

    def validate(self, task: Task) -> None:
        """Enforce structural constraints before a write."""
        if task.container_id is not None and task.area_id is not None:
            raise ConstraintError(f"task {task.id or task.title!r} cannot have both a project and an area")

        if task.container_id is not None:
            if task.container_id == task.id:
                raise ConstraintError(f"task {task.id} cannot contain itself")
            try:
                container = self.get_by_id(task.container_id)
            except NotFoundError:
                raise ConstraintError(f"project {task.container_id} does not exist")
            if container.task_type != TaskType.PROJECT:
                raise ConstraintError(f"task {task.container_id} is not a project")

        if task.area_id is not None:
            try:
                self.get_area(task.area_id)
            except NotFoundError:
                raise ConstraintError(f"area {task.area_id} does not exist")


class Storage(TaskStore):
    """File-based task storage using markdown files."""

    def __init__(self, config: ConfigModel):
        self.config = config
        self.tasks_dir = config.get_tasks_dir()
        self.areas_path = config.get_areas_path()
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure necessary directories exist."""
        self.tasks_dir.mkdir(parents=True, exist_ok=True)

    def _task_path(self, task_id: int) -> Path:
        return self.tasks_dir / f"{task_id}.md"

    def _read_task(self, path: Path) -> Task:
        try:
            post = frontmatter.loads(path.read_text(encoding="utf-8"))
            data = dict(post.metadata)
            data["description"] = post.content
            return Task.from_dict(data)
        except (OSError, ValueError, TypeError, KeyError, AttributeError, yaml.YAMLError) as e:
            raise StorageError(f"cannot read task file {path}: {e}")

    def _write_task(self, task: Task) -> None:
        data = task.to_dict()
        description = data.pop("description")
        post = frontmatter.Post(description, **data)
        try:
            self._task_path(task.id).write_text(frontmatter.dumps(post) + "\n", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"cannot write task {task.id}: {e}")

    def _task_ids(self) -> List[int]:
        ids = []
        for path in self.tasks_dir.iterdir():
            match = TASK_FILE_RE.match(path.name)
            if match:
                ids.append(int(match.group(1)))
        return sorted(ids)

    def get_next_task_id(self) -> int:
        ids = self._task_ids()
        return ids[-1] + 1 if ids else 1

    def get_by_id(self, task_id: int) -> Task:
        path = self._task_path(task_id)
        if not path.exists():
            raise NotFoundError("task", task_id)
        return self._read_task(path)

    def create(self, task: Task) -> int:
        self.validate(task)
        task.id = self.get_next_task_id()
        self._write_task(task)
        logger.info(f"Created task {task.id}: {task.title}")
        return task.id

    def update(self, task: Task) -> None:
        if not task.id or not self._task_path(task.id).exists():
            raise NotFoundError("task", task.id)
        self.validate(task)
        self._write_task(task)
        logger.debug(f"Updated task {task.id}")

    def delete(self, task_id: int) -> None:
        """Delete a task; deleting a project deletes its children too."""
        path = self._task_path(task_id)
        if not path.exists():
            raise NotFoundError("task", task_id)
        for child in self.children_of(task_id):
            self._task_path(child.id).unlink()
            logger.info(f"Deleted task {child.id} with project {task_id}")
        path.unlink()
        logger.info(f"Deleted task {task_id}")

    def list_tasks(self, predicate: Optional[Callable[[Task], bool]] = None) -> List[Task]:
        tasks = []
        for task_id in self._task_ids():
            try:
                task = self._read_task(self._task_path(task_id))
            except StorageError as e:
                logger.warning(f"Skipping unreadable task {task_id}: {e}")
                continue
            if predicate is None or predicate(task):
                tasks.append(task)
        return tasks

    # Areas

    def _load_areas(self) -> List[Area]:
        if not self.areas_path.exists():
            return []
        try:
            data = yaml.safe_load(self.areas_path.read_text(encoding="utf-8")) or {}
            return [Area.from_dict(item) for item in data.get("areas", [])]
        except (OSError, KeyError, TypeError, AttributeError, yaml.YAMLError) as e:
            raise StorageError(f"cannot read {self.areas_path}: {e}")

    def _save_areas(self, areas: List[Area]) -> None:
        data = {"areas": [area.to_dict() for area in areas]}
        try:
            self.areas_path.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"cannot write {self.areas_path}: {e}")

    def list_areas(self) -> List[Area]:
        return sorted(self._load_areas(), key=lambda a: a.name.lower())

    def create_area(self, name: str) -> Area:
        name = name.strip()
        if not name:
            raise ConstraintError("area name cannot be empty")
        areas = self._load_areas()
        if any(area.name.lower() == name.lower() for area in areas):
            raise ConstraintError(f"area already exists: {name}")

        area = Area(id=max((a.id for a in areas), default=0) + 1, name=name)
        areas.append(area)
        self._save_areas(areas)
        logger.info(f"Created area {area.id}: {area.name}")
        return area

    def rename_area(self, name: str, new_name: str) -> Area:
        if not new_name.strip():
            raise ConstraintError("area name cannot be empty")
        areas = self._load_areas()
        area = self.get_area_by_name(name)
        if new_name.strip().lower() != area.name.lower() and any(
                a.name.lower() == new_name.strip().lower() for a in areas):
            raise ConstraintError(f"area already exists: {new_name}")
        for item in areas:
            if item.id == area.id:
                item.name = new_name.strip()
                area = item
        self._save_areas(areas)
        return area

    def delete_area(self, name: str) -> Area:
        """Delete an area; its tasks are moved out of it."""
        area = self.get_area_by_name(name)
        for task in self.list_tasks(lambda t: t.area_id == area.id):
            task.set_area(None)
            self._write_task(task)
        self._save_areas([a for a in self._load_areas() if a.id != area.id])
        logger.info(f"Deleted area {area.id}: {area.name}")
        return area

