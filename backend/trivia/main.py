from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    registry = current_app.extensions['trivia'].registry
    return jsonify({'message': 'Welcome to the trivia game server!', 'sessions': len(registry)})
