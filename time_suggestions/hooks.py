app_name = "time_suggestions"
app_title = "Time Suggestions"
app_publisher = "Time Suggestions Contributors"
app_description = "Sesiones de trabajo personales con sugerencias de horarios basadas en historial y disponibilidad"
app_email = "dev@time-suggestions.local"
app_license = "mit"

# Apps
# ------------------

# required_apps = []

# Includes in <head>
# ------------------

# app_include_css = "/assets/time_suggestions/css/time_suggestions.css"
# app_include_js = "/assets/time_suggestions/js/time_suggestions.js"

# Installation
# ------------

# before_install = "time_suggestions.install.before_install"
# after_install = "time_suggestions.install.after_install"

# Document Events
# ---------------
# Hook on document methods and events

doc_events = {
	"User": {
		# Drop the cached timezone so suggestions pick up the new value
		"on_update": "time_suggestions.time_suggestions.storage.timezone.on_user_update"
	}
}

# Scheduled Tasks
# ---------------

# scheduler_events = {
# 	"daily": [
# 		"time_suggestions.tasks.daily"
# 	],
# }

# Testing
# -------

# before_tests = "time_suggestions.install.before_tests"

# User Data Protection
# --------------------

user_data_fields = [
	{
		"doctype": "Activity Session",
		"filter_by": "user",
		"redact_fields": ["title"],
		"partial": 1,
	},
	{
		"doctype": "Weekly Availability",
		"filter_by": "user",
		"strict": False,
	},
]
