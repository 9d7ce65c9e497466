from datetime import date

functionName = "getCurrentDateString"

functionOptions = {
    "type": "function",
    "function": {
        "name": functionName,
        "description": "This function returns the current date in a string format.",
        "parameters": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
}


def getCurrentDateString():
    return date.today().strftime("%a %b %d %Y")
