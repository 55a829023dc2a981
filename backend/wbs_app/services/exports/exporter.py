import datetime as dt
from pathlib import Path
import pandas as pd

from wbs_app.core.config import settings
from wbs_app.services.tree.builder import TreeNode, flatten

SHEET_COLUMNS = ["wbs_code", "name", "type", "level", "description", "id", "parent_id"]


def tree_frame(roots: list[TreeNode]) -> pd.DataFrame:
    rows = [{col: getattr(n, col) for col in SHEET_COLUMNS} for n in flatten(roots)]
    return pd.DataFrame(rows, columns=SHEET_COLUMNS)


def export_tree_xlsx(roots: list[TreeNode], out_path: Path) -> Path:
    df = tree_frame(roots)
    # indent names so the sheet reads like the tree
    df["name"] = [("    " * int(lvl)) + name for lvl, name in zip(df["level"], df["name"])]
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out_path, engine="xlsxwriter") as w:
        df.to_excel(w, index=False, sheet_name="wbs")
        w.sheets["wbs"].freeze_panes(1, 0)
    return out_path


def default_export_path(prefix: str, ext: str) -> Path:
    ts = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%d_%H%M%S")
    return Path(settings.EXPORT_DIR) / f"{prefix}_{ts}.{ext}"
