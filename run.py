# run.py
import uvicorn
import logging
logging.basicConfig(level=logging.INFO)
logging.getLogger("rules.engine").setLevel(logging.DEBUG)
logging.getLogger("rules.actions").setLevel(logging.DEBUG)

uvicorn.run("rulegate.main:app", host="0.0.0.0", port=8080, reload=False)
