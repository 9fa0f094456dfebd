# resource_loader/paths.py

from resource_loader.names import ResourceClass

DIR_JSON = "/json/"
DIR_HTML = "/html/"
DIR_HTML_FS = DIR_HTML + "fs/"

ROOT_SUFFIX = "-tmpl"


class PathResolver:
    """
    Отображает классифицированное имя в локатор для транспорта.

    Префиксы каталогов и правила суффиксов задают контракт с транспортом:
      Json     -> <json_dir><name>.json
      HtmlRoot -> <html_dir><name без "-tmpl">.html
      HtmlFs   -> <html_fs_dir><name>.html
    """

    def __init__(
            self,
            json_dir: str = DIR_JSON,
            html_dir: str = DIR_HTML,
            html_fs_dir: str = DIR_HTML_FS,
    ):
        self.json_dir = json_dir
        self.html_dir = html_dir
        self.html_fs_dir = html_fs_dir

    @classmethod
    def from_config(cls, paths) -> "PathResolver":
        return cls(
            json_dir=paths.json_dir,
            html_dir=paths.html_dir,
            html_fs_dir=paths.html_fs_dir,
        )

    def resolve(self, name: str, cls: ResourceClass) -> str:
        if cls is ResourceClass.JSON:
            return f"{self.json_dir}{name}.json"
        if cls is ResourceClass.HTML_ROOT:
            return f"{self.html_dir}{strip_suffix(name, ROOT_SUFFIX)}.html"
        if cls is ResourceClass.HTML_FS:
            return f"{self.html_fs_dir}{name}.html"
        raise ValueError(f"No locator for {name!r} of class {cls.name}")


def strip_suffix(name: str, suffix: str) -> str:
    if suffix and name.endswith(suffix):
        return name[:-len(suffix)]
    return name


_default_resolver = PathResolver()


def resolve(name: str, cls: ResourceClass) -> str:
    return _default_resolver.resolve(name, cls)
