# smoke_api.py
import sys
import pprint
import time

import requests

API_BASE = "http://127.0.0.1:8000/api/v1"
IMAGE_PATH = sys.argv[1] if len(sys.argv) > 1 else "test_room.jpg"  # <-- change to a real image path

with open(IMAGE_PATH, "rb") as f:
    files = {"file": (IMAGE_PATH.replace("\\", "/").split("/")[-1], f, "image/jpeg")}
    r = requests.post(f"{API_BASE}/source", files=files, timeout=30)
    print("Source:", r.status_code)

r = requests.put(f"{API_BASE}/settings", data={"preset_id": "window-punch"}, timeout=10)
print("Settings:", r.status_code)

r = requests.post(f"{API_BASE}/generate", timeout=300)
print("Generate:", r.status_code)
state = r.json()
print("Status:", state.get("status"), "| Error:", state.get("error"))

# give the scene analysis a moment
time.sleep(2)
state = requests.get(f"{API_BASE}/state", timeout=10).json()
print("Analysis:", state.get("analysis"))

if state.get("status") == "SUCCESS":
    png = requests.get(f"{API_BASE}/result.png", timeout=30)
    out = f"alphapunch-{int(time.time())}.png"
    with open(out, "wb") as f:
        f.write(png.content)
    print("Saved:", out)

history = requests.get(f"{API_BASE}/history", timeout=10).json()
pprint.pprint([(h["id"], h["prompt_used"][:40]) for h in history["items"]])
