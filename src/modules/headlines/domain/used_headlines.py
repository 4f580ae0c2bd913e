"""Bounded, insertion-ordered set of already served headline titles."""


class UsedHeadlineSet:
    """超过上限时按插入顺序淘汰最旧的标题。"""

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._titles: dict[str, None] = {}

    def add(self, title: str) -> None:
        self._titles.pop(title, None)
        self._titles[title] = None
        while len(self._titles) > self.max_size:
            del self._titles[next(iter(self._titles))]

    def __contains__(self, title: object) -> bool:
        return title in self._titles

    def __len__(self) -> int:
        return len(self._titles)

    def __iter__(self):
        return iter(list(self._titles))

    def clear(self) -> None:
        self._titles.clear()
