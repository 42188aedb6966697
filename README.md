# studentservice

A small back-office service for keeping track of students and their
vaccinations. It exposes a JSON HTTP API for creating and editing students,
recording vaccinations against vaccination drives, browsing the results and
generating spreadsheet reports. Large imports are done by uploading a
workbook; the upload is queued and a separate worker processes it, producing
a per-row report of what was accepted and what was rejected.

The service stores its data in MySQL, keeps uploaded files and reports in an
S3-compatible object store (such as MinIO), hands bulk jobs over through
RabbitMQ, and asks a separate vaccine-drive service whether a drive exists.

## Installing

```
pip install .
```

The database engine is created with a `mysql+pymysql://` URL, so the PyMySQL
driver must be installed alongside the package (`pip install pymysql`).

## Running

The `studentservice` command starts one of two roles. A `.env` file in the
working directory is loaded first if present; a missing file is only logged.

Start the HTTP API (listens on port 8081, all interfaces):

```
studentservice --service server
```

Start the bulk-upload worker, which consumes the `bulk-upload` queue:

```
studentservice
```

Any value for `--service` (also accepted as `-service`) other than `server`
starts the worker.

## Configuration

Settings are read from the environment by `studentservice.adapters.Settings.from_env`.

| Variable | Meaning |
| --- | --- |
| `DB_USER`, `DB_PASS`, `DB_HOST`, `DB_PORT`, `DB_NAME` | MySQL connection |
| `RABBIT_USER`, `RABBIT_PASS`, `RABBIT_HOST`, `RABBIT_PORT` | RabbitMQ connection |
| `MINIO_SERVER`, `MINIO_PORT` | Object-store host and port (plain HTTP) |
| `MINIO_USERNAME`, `MINIO_PASSWORD`, `MINIO_REGION` | Object-store credentials and region |
| `MINIO_BULK_UPLOAD_BUCKET` | Bucket holding uploads and generated reports |
| `VACCINE_SERVICE` | Base URL of the vaccine-drive service |

An example `.env`:

```
DB_USER=user
DB_PASS=password
DB_HOST=localhost
DB_PORT=3306
DB_NAME=school
RABBIT_USER=user
RABBIT_PASS=password
RABBIT_HOST=localhost
RABBIT_PORT=5672
MINIO_SERVER=localhost
MINIO_PORT=9000
MINIO_USERNAME=user
MINIO_PASSWORD=password
MINIO_REGION=us-east-1
MINIO_BULK_UPLOAD_BUCKET=bulk-uploads
VACCINE_SERVICE=http://localhost:8080
```

Drives are looked up at `<VACCINE_SERVICE>/vaccine/drives/<id>` and
`<VACCINE_SERVICE>/vaccine/drives?vaccine_name=<name>`; the reply is expected
to hold a `data` member with one drive object or a list of them.

## HTTP API

Request bodies are JSON. Trailing slashes in paths are ignored, and every
reply carries `Access-Control-Allow-Origin: *`.

Students

- `POST /students` — create a student. Fields: `name`, `class`, `gender`,
  `roll_no`, `phone_no`, all required. `class` must be `Grade 1` to
  `Grade 12`. Answers `201` with the stored student and `_links`, or `400`
  with `"message": "Student Not Onboarded"` and the database error.
- `PATCH /students` — update a student by `id`; only the non-empty fields
  given are changed. Answers `200` with the updated student, or `500` if no
  student has that id.
- `POST /students/bulk-upload` — same as `PATCH /students`.

Vaccination records

- `POST /vaccine-records` — record that `student_id` was vaccinated in
  `drive_id`. The drive is checked against the vaccine-drive service and the
  student against the database. Answers `201` or `400`.
- `GET /vaccine-records/students` and `GET /vaccine-records/students/<id>` —
  list students with their vaccination status. Query filters: `roll_no`,
  `class`, `name` (substring), `vaccine_name`; paging with `limit` (default 5,
  at most 15) and `offset`. The reply carries `total`, `limit` and `offset`
  when they are not zero.
- `GET /vaccine-records/dashboard` — `total_students` and
  `vaccinated_students`.
- `GET /vaccine-records/genrate-report` — build a spreadsheet report,
  optionally filtered by `class` and `vaccine_name`, store it in the bucket
  under `reports/<request id>/Report.xlsx` and return its URL as `file`.

Bulk uploads

- `POST /bulk-upload/students` — multipart upload with a `file` field. Rows
  after the header must have five columns: name, class, gender, roll number,
  phone number.
- `POST /bulk-upload/vaccine-records` — multipart upload with a `file` field.
  Rows after the header must have two integer columns: student id, drive id.
- `GET /bulk-upload` and `GET /bulk-upload/<request_id>` — job status with
  paging as above; the reply always carries `limit`, `offset` and `total`.

An upload is stored under `uploads/<request id>/`, answered with `202` and a
`request_id` whose status starts as `PENDING`. The worker moves the job to
`PROCESSING`, then to `PROCESSED` (with the URL of the report in `file_path`
and counts in `total_records` and `processed_records`) or to `FAILED` with an
`error_message` such as `Missing Columns` or `invalid entry at row N`.

## Errors

Validation failures answer `400` with `"message": "Invalid Input"` and an
`error` object mapping each offending field to its message. Other failures
answer with `"message": "unable to process request"` and the error text in
`error` (`400` for unreadable requests, `500` for failures while handling
them).

## Using the pieces directly

- `studentservice.webapp.create_app(student_service, vaccine_service, bulk_service)`
  builds the Flask application around any objects with the service methods;
  `build_app(settings)` connects to the backing services first and
  `run_server(settings, port)` serves it.
- `studentservice.cli.start_bulk_processor(settings, queue_name)` runs the worker.
- `studentservice.spreadsheet` reads the first sheet of an `.xlsx` workbook
  (`read_rows`) and writes one-sheet reports (`write_report`).
- `studentservice.storage.ObjectStorage` puts and gets objects on an
  S3-compatible server with Signature V4 requests.

## What it does not do

- It does not create database tables; `students`, `vaccination_records` and
  `bulk_upload_jobs` must already exist.
- Legacy `.xls` workbooks pass the upload check but cannot be read; such jobs
  end `FAILED` with `Internal Server Error`. Use `.xlsx`.
- The HTTP server only accepts and queues bulk uploads; they are processed
  only by a running worker.
- There is no endpoint to list or delete students directly, and no
  authentication.