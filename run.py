from __future__ import annotations
import calendar
import os
from clinic import create_app

def main() -> None:
    flask_app = create_app()

    # show what routes are actually mounted
    print("\n=== URL MAP ===")
    for r in sorted(flask_app.url_map.iter_rules(), key=lambda x: x.rule):
        print(r)
    print("===============\n")

    config = flask_app.config
    print(f"database:       {config['SQLALCHEMY_DATABASE_URI']}")
    print(f"week starts on: {calendar.day_name[config['WEEK_STARTS_ON']]}")
    print(f"pain level:     {'required' if config['PAIN_LEVEL_REQUIRED'] else 'optional'}")
    print(f"reminders:      {', '.join(str(m) for m in config['REMINDER_MONTH_OPTIONS'])} months\n")

    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=debug_enabled)

if __name__ == "__main__":
    main()
