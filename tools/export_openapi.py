import json
import sys

from yummio_api.main import app


def main(path: str = "openapi.json") -> dict:
    schema = app.openapi()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(schema, f, ensure_ascii=False, indent=2)
    print(f"✅ {path} escrito")
    return schema


if __name__ == "__main__":
    main(*sys.argv[1:2])
